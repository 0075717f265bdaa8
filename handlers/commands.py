"""Command handlers: run a parsed ledger command and build its reply"""

import logging

from config import Config
from services.ledger_services import LedgerServices
from services.report_service import ReportService
from services.wallet_service import WALLET_PROMPT, normalize_wallet
from utils.channels import channel_label
from utils.command_grammar import Command
from utils.conversation_state import ConversationStateStore, PendingKind
from utils.datetime_helpers import format_due, parse_timestamp
from utils.exception_handler import PermissionDeniedError, ValidationError
from utils.money import format_money

logger = logging.getLogger(__name__)

START_TEXT = (
    "✅ TIKTOK_LITE_BOT\n\n"
    "Gõ nhanh:\n"
    "• dabong 100k\n"
    "• hopqua Khanh mail@gmail.com\n"
    "• hopqua 200k\n"
    "• qr Khanh mail@gmail.com\n"
    "• qr 57k\n"
    "• them 0.5k\n"
    "• ssa34 35k (bot hỏi ví)\n"
    "• ssa34 ok hopqua100k\n"
    "• mua 5may 120k (bot hỏi ví)\n"
    "• 4may hq ok tach1\n"
    "• 5may hh800k tach1\n"
)

HELP_TEXT = (
    "📌 Lệnh:\n"
    "GAME:\n"
    "- dabong 100k\n"
    "- hopqua <Name> <Email>\n"
    "- hopqua 200k\n"
    "- qr <Name> <Email>\n"
    "- qr 57k\n"
    "- them 0.5k\n\n"
    "MÁY / LÔ:\n"
    "- <mã máy> <giá> (vd: ssa34 35k)\n"
    "- <mã máy> ok <game><tiền> (vd: ssa34 ok hopqua100k)\n"
    "- mua <N>may <tổng tiền>\n"
    "- <N>may <game><tiền> tach<K>\n"
    "- <N>may hq ok tach<K>\n\n"
    "BÁO CÁO:\n"
    "- /baocao [YYYY-MM]\n"
    "- /pending\n"
    "- /audit [n]\n"
)

UNKNOWN_TEXT = "Mình không hiểu lệnh. Gõ /help để xem cú pháp."
PERMISSION_DENIED_TEXT = "⛔ Bạn không có quyền dùng lệnh này."
UNDO_TEXT = "⚠️ /undo: hiện mới log UNDO_LOG. Muốn rollback thật mình sẽ làm tiếp."

REVENUE_LABELS = {"db": "DB", "hq": "HQ", "qr": "QR", "other": "THÊM"}


class LedgerCommandHandler:
    """Executes grammar commands against the ledger services"""

    def __init__(self, services: LedgerServices, states: ConversationStateStore, admin_id: str = ""):
        self.services = services
        self.states = states
        self.admin_id = str(admin_id or "")

    def is_admin(self, sender_id) -> bool:
        return bool(self.admin_id) and str(sender_id or "") == self.admin_id

    async def execute(self, command: Command, chat_id, sender_id) -> str:
        handler = getattr(self, f"_cmd_{command.kind.value}")
        return await handler(command, chat_id, sender_id)

    # ----- static / read-only -----

    async def _cmd_start(self, command, chat_id, sender_id) -> str:
        return START_TEXT

    async def _cmd_help(self, command, chat_id, sender_id) -> str:
        return HELP_TEXT

    async def _cmd_unknown(self, command, chat_id, sender_id) -> str:
        return UNKNOWN_TEXT

    async def _cmd_invalid(self, command, chat_id, sender_id) -> str:
        return command.usage

    async def _cmd_report(self, command, chat_id, sender_id) -> str:
        report = await self.services.reports.monthly_report(command.args.get("month"))
        return ReportService.render_monthly(report)

    async def _cmd_pending(self, command, chat_id, sender_id) -> str:
        return await self.services.reports.pending_text()

    async def _cmd_undo(self, command, chat_id, sender_id) -> str:
        latest = await self.services.audit.recent(1)
        if not latest:
            return UNDO_TEXT
        entry = latest[0]
        return f"{UNDO_TEXT}\nGần nhất: #{entry.id} {entry.action} ({entry.timestamp})"

    async def _cmd_audit(self, command, chat_id, sender_id) -> str:
        limit = min(command.args.get("limit") or Config.AUDIT_LIST_DEFAULT, Config.AUDIT_LIST_MAX)
        entries = await self.services.audit.recent(limit)
        return ReportService.render_audit(entries)

    # ----- revenue / invites -----

    async def _cmd_post_revenue(self, command, chat_id, sender_id) -> str:
        args = command.args
        await self.services.revenue.post(chat_id, args["channel"], args["amount"], args["kind"], note=args["note"])
        label = REVENUE_LABELS.get(args["channel"], args["channel"].upper())
        return f"✅ {label} +{format_money(args['amount'])}"

    async def _cmd_create_invite(self, command, chat_id, sender_id) -> str:
        args = command.args
        invite = await self.services.invites.create_invite(chat_id, args["channel"], args["name"], args["email"])
        due = invite.due_date
        tz = self.services.clock.tz
        due_dt = parse_timestamp(due, tz)
        tz_name = getattr(tz, "key", str(tz))
        return (
            f"✅ Đã lưu invite {args['channel'].upper()}: {args['name']} ({args['email']})\n"
            f"⏰ Due: {format_due(due_dt)} ({tz_name})"
        )

    # ----- wallets -----

    async def _cmd_set_wallet(self, command, chat_id, sender_id) -> str:
        if not self.is_admin(sender_id):
            logger.warning(f"⛔ Non-admin {sender_id} attempted wallet override in chat {chat_id}")
            raise PermissionDeniedError(PERMISSION_DENIED_TEXT)
        wallet = normalize_wallet(command.args.get("wallet"))
        amount = command.args.get("amount")
        if wallet is None or amount is None:
            raise ValidationError(command.usage)
        balance, delta = await self.services.wallets.set_balance(wallet, amount)
        return f"✅ Set ví {wallet} = {format_money(balance)} (delta {format_money(delta)})"

    # ----- phones / lots -----

    async def _cmd_buy_device(self, command, chat_id, sender_id) -> str:
        code = command.args["phone_code"]
        price = command.args["buy_price"]
        await self.services.devices.create_device(chat_id, code, price)
        self.states.open(chat_id, PendingKind.WALLET_FOR_DEVICE, phone_code=code, buy_price=price)
        return f"✅ Đã lưu mua máy {code} giá {format_money(price)}.\n{WALLET_PROMPT}"

    async def _cmd_resolve_device(self, command, chat_id, sender_id) -> str:
        args = command.args
        result = await self.services.devices.resolve_device(args["phone_code"], args["game_source"], args["game_amount"])
        return (
            f"✅ Máy {args['phone_code']} OK.\n"
            f"• Giá mua: {format_money(result.buy_price)}\n"
            f"• Thưởng: {format_money(result.game_amount)}\n"
            f"• Lãi/lỗ: {format_money(result.profit)}"
        )

    async def _cmd_buy_lot(self, command, chat_id, sender_id) -> str:
        qty = command.args["qty"]
        total_cost = command.args["total_cost"]
        lot = await self.services.lots.create_lot(chat_id, qty, total_cost)
        self.states.open(chat_id, PendingKind.WALLET_FOR_LOT, lot_row_id=lot.id, total_cost=total_cost)
        return f"✅ Đã tạo lô {lot.lot_id} ({qty} máy) tổng {format_money(total_cost)}.\n{WALLET_PROMPT}"

    async def _cmd_lot_result(self, command, chat_id, sender_id) -> str:
        args = command.args
        result = await self.services.lots.record_result(args["ok"], args["tach"], args["game"], args["total_reward"])
        text = f"✅ KQ lô gần nhất: ok={result.ok}, tạch={result.tach}, game={result.game}"
        if result.total_reward is None:
            return text
        return (
            f"{text}, thưởng={format_money(result.total_reward)}\n"
            f"📈 Lãi/lỗ = {format_money(result.profit)}"
        )


def checkin_prompt(channel: str, name: str) -> str:
    """Question sent by the due-date sweep"""
    return f"{channel_label(channel)} {name} = bao nhiêu? (vd: 60k)"
