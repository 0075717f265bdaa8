"""
Invite lifecycle tests: create -> pending -> check-in reward -> done
"""

import pytest

from models import CheckinRewardRecord, Invite, RevenueEvent, RevenueKind
from services.report_service import ReportService
from utils.exception_handler import NotFoundError

CHAT = "12345"


class TestInviteCreation:

    @pytest.mark.asyncio
    async def test_due_date_is_fourteen_days_after_invite(self, services):
        invite = await services.invites.create_invite(CHAT, "hq", "Khanh", "k@gmail.com")

        assert invite.status == "pending"
        assert invite.time_invited == "2024-05-01T09:00:00+09:00"
        assert invite.due_date == "2024-05-15T09:00:00+09:00"
        assert invite.last_reminded_at is None

        entries = await services.audit.recent(10)
        assert [e.action for e in entries] == ["ADD_INVITE"]

    @pytest.mark.asyncio
    async def test_pending_list_sorted_by_due_with_overdue_flag(self, services, frozen_now):
        await services.invites.create_invite(CHAT, "hq", "Khanh", "k@gmail.com")
        frozen_now.advance(days=2)
        await services.invites.create_invite(CHAT, "qr", "Linh", "l@gmail.com")
        frozen_now.advance(days=13)

        pending = await services.invites.pending_invites()
        assert [p.invite.name for p in pending] == ["Khanh", "Linh"]
        assert [p.overdue for p in pending] == [True, False]

        text = await services.reports.pending_text()
        assert text.startswith("🕒 Pending invites (2)")
        assert "⚠️ hq - Khanh (k@gmail.com) due: Wed 15/05" in text
        assert "⏳ qr - Linh" in text

    @pytest.mark.asyncio
    async def test_pending_list_is_capped_with_remainder(self, services):
        for i in range(52):
            await services.invites.create_invite(CHAT, "hq", f"User{i}", f"u{i}@gmail.com")

        text = await services.reports.pending_text()
        lines = text.strip().split("\n")

        assert lines[0] == "🕒 Pending invites (52)"
        assert len([line for line in lines if line.startswith("• ")]) == 50
        assert lines[-1] == "… và 2 invite khác"
        assert "User49" in text
        assert "User50" not in text


class TestCheckinCompletion:

    @pytest.mark.asyncio
    async def test_completion_posts_reward_and_marks_done(self, services):
        await services.invites.create_invite(CHAT, "hq", "Khanh", "k@gmail.com")

        invite = await services.invites.complete_checkin(CHAT, "hq", "khanh", None, 60000)

        assert invite.status == "done"
        assert invite.checkin_reward == 60000
        stored = await services.store.get(Invite, invite.id)
        assert stored.status == "done"

        revenue = await services.store.fetch_all(RevenueEvent)
        assert len(revenue) == 1
        assert revenue[0].type == "checkin_reward"
        assert revenue[0].amount == 60000
        assert revenue[0].note == "checkin 14 ngày: Khanh"

        rewards = await services.store.fetch_all(CheckinRewardRecord)
        assert [r.reward for r in rewards] == [60000]

    @pytest.mark.asyncio
    async def test_second_completion_finds_nothing(self, services):
        await services.invites.create_invite(CHAT, "hq", "Khanh", "k@gmail.com")
        await services.invites.complete_checkin(CHAT, "hq", "Khanh", None, 60000)

        with pytest.raises(NotFoundError) as exc_info:
            await services.invites.complete_checkin(CHAT, "hq", "Khanh", None, 60000)
        assert exc_info.value.message == "Không tìm thấy invite pending cho hq Khanh"
        assert len(await services.store.fetch_all(RevenueEvent)) == 1

    @pytest.mark.asyncio
    async def test_channel_must_match(self, services):
        await services.invites.create_invite(CHAT, "hq", "Khanh", "k@gmail.com")

        with pytest.raises(NotFoundError):
            await services.invites.complete_checkin(CHAT, "qr", "Khanh", None, 60000)

    @pytest.mark.asyncio
    async def test_email_match_ignores_name(self, services):
        await services.invites.create_invite(CHAT, "qr", "Linh", "linh@x.com")

        invite = await services.invites.complete_checkin(CHAT, "qr", "someone", "LINH@X.COM", 30000)
        assert invite.name == "Linh"

    @pytest.mark.asyncio
    async def test_same_name_resolves_to_most_recent_invite(self, services, frozen_now):
        first = await services.invites.create_invite(CHAT, "hq", "Khanh", "a@x.com")
        frozen_now.advance(hours=1)
        second = await services.invites.create_invite(CHAT, "hq", "Khanh", "b@x.com")

        done = await services.invites.complete_checkin(CHAT, "hq", "Khanh", None, 60000)
        assert done.id == second.id

        done = await services.invites.complete_checkin(CHAT, "hq", "Khanh", None, 60000)
        assert done.id == first.id


class TestMonthlyReport:

    @pytest.mark.asyncio
    async def test_report_filters_by_month_prefix(self, services, frozen_now):
        await services.revenue.post(CHAT, "db", 100000, RevenueKind.INVITE_REWARD)
        await services.revenue.post(CHAT, "hq", 200000, RevenueKind.INVITE_REWARD)
        await services.invites.create_invite(CHAT, "hq", "Khanh", "k@gmail.com")
        await services.invites.create_invite(CHAT, "qr", "Linh", "l@gmail.com")
        await services.invites.complete_checkin(CHAT, "hq", "Khanh", None, 60000)
        await services.wallets.adjust("hana", 50000)

        frozen_now.advance(days=32)
        await services.revenue.post(CHAT, "qr", 57000, RevenueKind.INVITE_REWARD)

        report = await services.reports.monthly_report("2024-05")
        assert report.by_channel == {"db": 100000, "hq": 260000}
        assert report.total == 360000
        assert (report.invites_pending, report.invites_done) == (1, 1)
        assert report.balances == {"hana": 50000}
        assert report.drift == {}

        current = await services.reports.monthly_report()
        assert current.month == "2024-06"
        assert current.total == 57000

        text = ReportService.render_monthly(report)
        assert "📊 Báo cáo tháng 2024-05" in text
        assert "Tổng thu TikTok: 360,000" in text
        assert "hana: 50,000" in text
        assert "lệch log" not in text

    @pytest.mark.asyncio
    async def test_empty_pending_list(self, services):
        assert await services.reports.pending_text() == "✅ Không có invite pending."
