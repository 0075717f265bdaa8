"""
Text router tests: command replies, follow-up questions, admin gating and the
Telegram adapter
"""

import pytest

from handlers.commands import PERMISSION_DENIED_TEXT, UNKNOWN_TEXT, HELP_TEXT
from handlers.follow_up import MONEY_REPROMPT
from handlers.text_router import LedgerTextRouter, route_text_message
from jobs.due_date_sweep import run_due_date_sweep
from database import create_session_factory
from models import LEDGER_MODELS, Invite, WalletLedgerEntry
from services.ledger_services import build_ledger_services
from services.wallet_service import WALLET_PROMPT, WALLET_REPROMPT
from utils.conversation_state import PendingKind

from conftest import ADMIN_ID, CHAT_ID

USER_ID = "111"


class TestCommandReplies:

    @pytest.mark.asyncio
    async def test_revenue_replies(self, router):
        assert await router.handle_text(CHAT_ID, USER_ID, "dabong 100k") == "✅ DB +100,000"
        assert await router.handle_text(CHAT_ID, USER_ID, "hopqua 200k") == "✅ HQ +200,000"
        assert await router.handle_text(CHAT_ID, USER_ID, "qr 57k") == "✅ QR +57,000"
        assert await router.handle_text(CHAT_ID, USER_ID, "them 0.5k") == "✅ THÊM +500"

    @pytest.mark.asyncio
    async def test_invite_reply_shows_due_day(self, router):
        reply = await router.handle_text(CHAT_ID, USER_ID, "hopqua Khanh mail@gmail.com")
        assert reply == (
            "✅ Đã lưu invite HQ: Khanh (mail@gmail.com)\n"
            "⏰ Due: Wed 15/05 (Asia/Seoul)"
        )

    @pytest.mark.asyncio
    async def test_static_and_unknown(self, router):
        assert await router.handle_text(CHAT_ID, USER_ID, "/help@LedgerBot") == HELP_TEXT
        assert await router.handle_text(CHAT_ID, USER_ID, "hello there friend") == UNKNOWN_TEXT
        assert await router.handle_text(CHAT_ID, USER_ID, "   ") is None

    @pytest.mark.asyncio
    async def test_invalid_keyword_returns_usage(self, router):
        reply = await router.handle_text(CHAT_ID, USER_ID, "dabong abc")
        assert reply == "Sai cú pháp. Ví dụ: dabong 100k"

    @pytest.mark.asyncio
    async def test_report_audit_and_undo(self, router):
        await router.handle_text(CHAT_ID, USER_ID, "dabong 100k")

        report = await router.handle_text(CHAT_ID, USER_ID, "baocao")
        assert "📊 Báo cáo tháng 2024-05" in report
        assert "db: 100,000" in report

        audit = await router.handle_text(CHAT_ID, USER_ID, "/audit 5")
        assert "ADD_GAME_REVENUE" in audit

        undo = await router.handle_text(CHAT_ID, USER_ID, "undo")
        assert undo.startswith("⚠️ /undo")
        assert "#1 ADD_GAME_REVENUE" in undo

    @pytest.mark.asyncio
    async def test_device_ok_reply(self, router):
        await router.handle_text(CHAT_ID, USER_ID, "ssa34 35k")
        await router.handle_text(CHAT_ID, USER_ID, "hana")

        reply = await router.handle_text(CHAT_ID, USER_ID, "ssa34 ok hopqua60k")
        assert reply == (
            "✅ Máy ssa34 OK.\n"
            "• Giá mua: 35,000\n"
            "• Thưởng: 60,000\n"
            "• Lãi/lỗ: 25,000"
        )

    @pytest.mark.asyncio
    async def test_not_found_is_reported_as_error(self, router):
        reply = await router.handle_text(CHAT_ID, USER_ID, "zz9 ok hq100k")
        assert reply == "❌ Lỗi: Không tìm thấy máy zz9"


class TestWalletFollowUps:

    @pytest.mark.asyncio
    async def test_device_purchase_asks_for_wallet(self, router, states):
        reply = await router.handle_text(CHAT_ID, USER_ID, "ssa34 35k")
        assert reply == f"✅ Đã lưu mua máy ssa34 giá 35,000.\n{WALLET_PROMPT}"
        assert states.get(CHAT_ID).kind == PendingKind.WALLET_FOR_DEVICE

        # an open question takes every text, commands included
        assert await router.handle_text(CHAT_ID, USER_ID, "/help") == WALLET_REPROMPT
        assert await router.handle_text(CHAT_ID, USER_ID, "vcb") == WALLET_REPROMPT
        assert states.is_awaiting(CHAT_ID)

        reply = await router.handle_text(CHAT_ID, USER_ID, "Hana")
        assert reply == "✅ Mua máy ssa34: -35,000 từ ví hana. Balance: -35,000"
        assert not states.is_awaiting(CHAT_ID)

    @pytest.mark.asyncio
    async def test_lot_purchase_asks_for_wallet(self, router, states):
        reply = await router.handle_text(CHAT_ID, USER_ID, "mua 5may 120k")
        assert reply == f"✅ Đã tạo lô LOT_1714521600000 (5 máy) tổng 120,000.\n{WALLET_PROMPT}"

        reply = await router.handle_text(CHAT_ID, USER_ID, "kt")
        assert reply == "✅ Mua lô LOT_1714521600000: -120,000 từ ví kt. Balance: -120,000"
        assert not states.is_awaiting(CHAT_ID)

    @pytest.mark.asyncio
    async def test_lot_result_replies(self, router):
        await router.handle_text(CHAT_ID, USER_ID, "mua 5may 120k")
        await router.handle_text(CHAT_ID, USER_ID, "kt")

        reply = await router.handle_text(CHAT_ID, USER_ID, "5may hh800k tach1")
        assert reply == (
            "✅ KQ lô gần nhất: ok=4, tạch=1, game=hq, thưởng=800,000\n"
            "📈 Lãi/lỗ = 680,000"
        )
        reply = await router.handle_text(CHAT_ID, USER_ID, "4may hq ok tach1")
        assert reply == "✅ KQ lô gần nhất: ok=4, tạch=1, game=hq"

    @pytest.mark.asyncio
    async def test_questions_are_per_conversation(self, router, states):
        await router.handle_text(CHAT_ID, USER_ID, "ssa34 35k")

        assert await router.handle_text("other-chat", USER_ID, "dabong 100k") == "✅ DB +100,000"
        assert states.is_awaiting(CHAT_ID)
        assert not states.is_awaiting("other-chat")


class TestAdminGating:

    @pytest.mark.asyncio
    async def test_non_admin_is_refused(self, router, services):
        reply = await router.handle_text(CHAT_ID, USER_ID, "chinh hana 500k")
        assert reply == PERMISSION_DENIED_TEXT
        assert await services.wallets.balances() == {}

    @pytest.mark.asyncio
    async def test_permission_is_checked_before_arguments(self, router):
        assert await router.handle_text(CHAT_ID, USER_ID, "chinh vcb") == PERMISSION_DENIED_TEXT

    @pytest.mark.asyncio
    async def test_admin_sets_balance(self, router, services):
        await services.wallets.adjust("hana", 100000)

        reply = await router.handle_text(CHAT_ID, ADMIN_ID, "chinh hana 500k")
        assert reply == "✅ Set ví hana = 500,000 (delta 400,000)"

        entries = await services.store.fetch_all(WalletLedgerEntry)
        assert sum(e.amount for e in entries) == 500000

    @pytest.mark.asyncio
    async def test_admin_with_bad_arguments_gets_usage(self, router):
        reply = await router.handle_text(CHAT_ID, ADMIN_ID, "chinh vcb 500k")
        assert reply == "Sai cú pháp. Ví dụ: chinh hana 500k"

    @pytest.mark.asyncio
    async def test_no_admin_configured_refuses_everyone(self, services, states):
        router = LedgerTextRouter(services, states, admin_id="")
        assert await router.handle_text(CHAT_ID, "", "chinh hana 500k") == PERMISSION_DENIED_TEXT


class TestCheckinFlow:

    @pytest.mark.asyncio
    async def test_invite_to_checkin_end_to_end(self, router, services, states, send, frozen_now):
        await router.handle_text(CHAT_ID, USER_ID, "hopqua Khanh mail@gmail.com")
        frozen_now.advance(days=14)

        await run_due_date_sweep(services, states, send)
        send.assert_awaited_once_with(CHAT_ID, "Hopqua Khanh = bao nhiêu? (vd: 60k)")

        assert await router.handle_text(CHAT_ID, USER_ID, "sáu chục") == MONEY_REPROMPT
        assert states.is_awaiting(CHAT_ID)

        reply = await router.handle_text(CHAT_ID, USER_ID, "60k")
        assert reply == "✅ Checkin hq Khanh: +60,000"
        assert not states.is_awaiting(CHAT_ID)

        invite = (await services.store.fetch_all(Invite))[0]
        assert invite.status == "done"
        assert await router.handle_text(CHAT_ID, USER_ID, "pending") == "✅ Không có invite pending."

    @pytest.mark.asyncio
    async def test_answer_for_vanished_invite_clears_question(self, router, states):
        states.open(CHAT_ID, PendingKind.CHECKIN_REWARD, game="hq", name="Ghost", email=None)

        reply = await router.handle_text(CHAT_ID, USER_ID, "60k")

        assert reply == "❌ Lỗi: Không tìm thấy invite pending cho hq Ghost"
        assert not states.is_awaiting(CHAT_ID)


class TestTelegramAdapter:

    @pytest.mark.asyncio
    async def test_reply_is_sent_to_message(self, router, make_update, make_context):
        update = make_update("dabong 100k")

        await route_text_message(update, make_context(router))

        update.effective_message.reply_text.assert_awaited_once_with("✅ DB +100,000")

    @pytest.mark.asyncio
    async def test_sender_identity_reaches_admin_check(self, router, make_update, make_context):
        update = make_update("chinh kt 1000", user_id=int(ADMIN_ID))

        await route_text_message(update, make_context(router))

        update.effective_message.reply_text.assert_awaited_once_with("✅ Set ví kt = 1,000 (delta 1,000)")

    @pytest.mark.asyncio
    async def test_message_without_text_is_ignored(self, router, make_update, make_context):
        update = make_update("")

        await route_text_message(update, make_context(router))

        update.effective_message.reply_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_errors_do_not_escape(self, router, make_update, make_context):
        update = make_update("dabong 100k")
        context = make_context(router)
        context.application.bot_data = {}

        assert await route_text_message(update, context) is None
        update.effective_message.reply_text.assert_not_awaited()


class TestStoreFailures:

    @pytest.mark.asyncio
    async def test_store_failure_keeps_question_open(self, engine, services, states, clock):
        available = {m.__tablename__ for m in LEDGER_MODELS} - {"wallet_log"}
        partial = build_ledger_services(create_session_factory(engine), available, clock)
        router = LedgerTextRouter(partial, states, admin_id=ADMIN_ID)

        await router.handle_text(CHAT_ID, USER_ID, "ssa34 35k")
        reply = await router.handle_text(CHAT_ID, USER_ID, "uri")

        assert reply == "❌ Lỗi: Missing table wallet_log"
        assert states.get(CHAT_ID).kind == PendingKind.WALLET_FOR_DEVICE
