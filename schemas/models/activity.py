"""
Activity log and OTP audit document models.

ActivityLogDoc - `activity_logs`: what a user did (login, note CRUD, ...)
OtpLogDoc      - `otp_logs`: every one-time code sent / verified / failed,
                 keyed by email so unregistered addresses are covered too
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict

from schemas.models.base import MongoBaseModel, PyObjectId


class ActivityAction(str, Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    VIEW = "VIEW"


class ActivityResource(str, Enum):
    USER = "USER"
    NOTE = "NOTE"


class ActivityLogDoc(MongoBaseModel):
    """Document model for the `activity_logs` collection."""

    model_config = ConfigDict(use_enum_values=True)

    user_id: PyObjectId
    action: ActivityAction
    resource: ActivityResource
    resource_id: Optional[str] = None
    details: dict[str, Any] = {}
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime


class OtpEvent(str, Enum):
    SENT = "sent"
    VERIFIED = "verified"
    FAILED = "failed"


class OtpLogDoc(MongoBaseModel):
    """Document model for the `otp_logs` collection."""

    model_config = ConfigDict(use_enum_values=True)

    email: str
    purpose: str
    action: OtpEvent
    success: bool = True
    error_code: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime
