"""Unit tests for services/activity_service.py and services/otp_log_service.py."""

from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect

from errors import RateLimitError
from schemas.models.account import ChallengePurpose
from schemas.models.activity import ActivityAction, ActivityResource, OtpEvent
from services.activity_service import ActivityService
from services.otp_log_service import OtpLogService
from shared.ip_utils import ClientInfo
from tests.fakes import InMemoryActivityRepository, InMemoryOtpLogRepository

USER = str(ObjectId())


@pytest.fixture
def repo():
    return InMemoryActivityRepository()


@pytest.fixture
def activity(repo, clock):
    return ActivityService(repo, clock=clock)


class TestActivityService:
    async def test_record(self, activity, repo, clock):
        await activity.record(
            USER,
            ActivityAction.LOGIN,
            ActivityResource.USER,
            details={"method": "pwd"},
            client=ClientInfo(ip="1.2.3.4", user_agent="ua"),
        )
        entry = repo.entries[0]
        assert str(entry.user_id) == USER
        assert entry.action == "LOGIN"
        assert entry.timestamp == clock.now
        assert entry.user_agent == "ua"

    async def test_storage_failure_is_swallowed(self, clock):
        broken = AsyncMock()
        broken.insert.side_effect = AutoReconnect("down")
        service = ActivityService(broken, clock=clock)
        await service.record(USER, ActivityAction.VIEW, ActivityResource.NOTE)
        broken.insert.assert_awaited_once()

    async def test_list_filters_by_action(self, activity, clock):
        await activity.record(USER, ActivityAction.LOGIN, ActivityResource.USER)
        clock.advance(minutes=1)
        await activity.record(USER, ActivityAction.CREATE, ActivityResource.NOTE)
        await activity.record(str(ObjectId()), ActivityAction.LOGIN, ActivityResource.USER)

        rows, total = await activity.list_for_user(USER, page=1, limit=20)
        assert total == 2
        assert rows[0].action == "CREATE"

        rows, total = await activity.list_for_user(
            USER, page=1, limit=20, action=ActivityAction.LOGIN
        )
        assert total == 1

    async def test_stats(self, activity):
        await activity.record(USER, ActivityAction.LOGIN, ActivityResource.USER)
        await activity.record(USER, ActivityAction.LOGIN, ActivityResource.USER)
        await activity.record(USER, ActivityAction.CREATE, ActivityResource.NOTE)
        stats = await activity.stats(USER)
        assert stats.total_activities == 3
        assert stats.login_count == 2
        assert stats.note_activities == 1
        assert stats.by_action == {"LOGIN": 2, "CREATE": 1}


class TestOtpLogService:
    @pytest.fixture
    def otp_repo(self):
        return InMemoryOtpLogRepository()

    @pytest.fixture
    def otp_logs(self, otp_repo, auth_settings, clock):
        return OtpLogService(otp_repo, auth_settings, clock=clock)

    async def test_failed_sends_do_not_count(self, otp_logs, auth_settings):
        for _ in range(auth_settings.otp_max_sends_per_window + 2):
            await otp_logs.record("a@b.co", "login", OtpEvent.SENT, success=False)
        await otp_logs.check_send_allowed("a@b.co")

    async def test_budget_is_per_email(self, otp_logs, auth_settings):
        for _ in range(auth_settings.otp_max_sends_per_window):
            await otp_logs.record("a@b.co", "login", OtpEvent.SENT)
        with pytest.raises(RateLimitError) as exc:
            await otp_logs.check_send_allowed("a@b.co")
        assert exc.value.details == {"retry_after_minutes": 60}
        await otp_logs.check_send_allowed("c@d.co")

    async def test_purpose_enum_stored_as_value(self, otp_logs, otp_repo):
        await otp_logs.record("a@b.co", ChallengePurpose.LOGIN, OtpEvent.VERIFIED)
        assert otp_repo.entries[0].purpose == "login"
        assert otp_repo.entries[0].action == "verified"

    async def test_storage_failure_is_swallowed(self, auth_settings, clock):
        broken = AsyncMock()
        broken.insert.side_effect = AutoReconnect("down")
        service = OtpLogService(broken, auth_settings, clock=clock)
        await service.record("a@b.co", "login", OtpEvent.SENT)
