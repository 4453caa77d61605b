"""
Activity log and OTP audit persistence (`activity_logs`, `otp_logs`).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase

from schemas.models.activity import ActivityLogDoc, OtpEvent, OtpLogDoc


class ActivityRepository:
    def __init__(self, db: AsyncDatabase) -> None:
        self._col: AsyncCollection = db["activity_logs"]

    async def insert(self, entry: ActivityLogDoc) -> ActivityLogDoc:
        result = await self._col.insert_one(entry.to_mongo())
        return entry.model_copy(update={"id": result.inserted_id})

    async def list_for_user(
        self,
        user_id: str,
        *,
        skip: int,
        limit: int,
        action: Optional[str] = None,
    ) -> tuple[list[ActivityLogDoc], int]:
        query: dict[str, Any] = {"user_id": ObjectId(user_id)}
        if action:
            query["action"] = action
        total = await self._col.count_documents(query)
        cursor = (
            self._col.find(query).sort("timestamp", DESCENDING).skip(skip).limit(limit)
        )
        entries = [ActivityLogDoc.from_mongo(doc) async for doc in cursor]
        return entries, total

    async def count_by_action(self, user_id: str) -> dict[str, int]:
        pipeline = [
            {"$match": {"user_id": ObjectId(user_id)}},
            {"$group": {"_id": "$action", "count": {"$sum": 1}}},
        ]
        cursor = await self._col.aggregate(pipeline)
        return {row["_id"]: row["count"] async for row in cursor}

    async def count_for_resource(self, user_id: str, resource: str) -> int:
        return await self._col.count_documents(
            {"user_id": ObjectId(user_id), "resource": resource}
        )

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("user_id", ASCENDING), ("timestamp", DESCENDING)])


class OtpLogRepository:
    def __init__(self, db: AsyncDatabase) -> None:
        self._col: AsyncCollection = db["otp_logs"]

    async def insert(self, entry: OtpLogDoc) -> None:
        await self._col.insert_one(entry.to_mongo())

    async def count_sent_since(self, email: str, since: datetime) -> int:
        return await self._col.count_documents(
            {
                "email": email,
                "action": OtpEvent.SENT.value,
                "success": True,
                "timestamp": {"$gte": since},
            }
        )

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("email", ASCENDING), ("action", ASCENDING), ("timestamp", DESCENDING)]
        )
        # Audit entries expire after 30 days
        await self._col.create_index(
            [("timestamp", ASCENDING)], expireAfterSeconds=30 * 24 * 3600
        )
