"""
Report Service
Read-only aggregates over the ledger and their text rendering.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config import Config
from models import Invite, InviteStatus, RevenueEvent, UndoLogEntry, WalletAccount, WalletLedgerEntry
from services.invite_service import InviteService
from services.ledger_store import LedgerStore
from services.wallet_service import WalletService
from utils.datetime_helpers import LedgerClock, format_due, month_key
from utils.money import format_money

logger = logging.getLogger(__name__)


@dataclass
class MonthlyReport:
    month: str
    total: int = 0
    by_channel: Dict[str, int] = field(default_factory=dict)
    invites_pending: int = 0
    invites_done: int = 0
    balances: Dict[str, int] = field(default_factory=dict)
    drift: Dict[str, Tuple[int, int]] = field(default_factory=dict)


class ReportService:

    def __init__(self, store: LedgerStore, invites: InviteService, wallets: WalletService, clock: LedgerClock):
        self.store = store
        self.invites = invites
        self.wallets = wallets
        self.clock = clock

    async def monthly_report(self, month: Optional[str] = None) -> MonthlyReport:
        """Revenue per channel and invite counts for rows stamped with the YYYY-MM prefix"""
        month = month or month_key(self.clock())
        report = MonthlyReport(month=month)

        for row in await self.store.fetch_all(RevenueEvent):
            if not str(row.timestamp or "").startswith(month):
                continue
            channel = str(row.game or "unknown")
            report.by_channel[channel] = report.by_channel.get(channel, 0) + int(row.amount or 0)
        report.total = sum(report.by_channel.values())

        for invite in await self.store.fetch_all(Invite):
            if not str(invite.time_invited or invite.timestamp or "").startswith(month):
                continue
            status = str(invite.status or "").lower()
            if status == InviteStatus.PENDING.value:
                report.invites_pending += 1
            elif status == InviteStatus.DONE.value:
                report.invites_done += 1

        if self.store.has_table(WalletAccount) and self.store.has_table(WalletLedgerEntry):
            report.balances = await self.wallets.balances()
            report.drift = await self.wallets.drifted_wallets()
        return report

    @staticmethod
    def render_monthly(report: MonthlyReport) -> str:
        text = f"📊 Báo cáo tháng {report.month}\n"
        text += f"• Tổng thu TikTok: {format_money(report.total)}\n"
        for channel, amount in report.by_channel.items():
            text += f"  - {channel}: {format_money(amount)}\n"
        text += f"• Invite: {report.invites_pending} pending, {report.invites_done} done\n"
        if report.balances:
            text += "• Số dư ví:\n"
            for wallet, balance in sorted(report.balances.items()):
                flag = " ⚠️ lệch log" if wallet in report.drift else ""
                text += f"  - {wallet}: {format_money(balance)}{flag}\n"
        return text

    async def pending_text(self) -> str:
        pending = await self.invites.pending_invites()
        if not pending:
            return "✅ Không có invite pending."

        limit = Config.PENDING_LIST_LIMIT
        text = f"🕒 Pending invites ({len(pending)})\n"
        for item in pending[:limit]:
            invite = item.invite
            due_str = format_due(item.due) if item.due else "invalid"
            icon = "⚠️" if item.overdue else "⏳"
            text += f"• {icon} {invite.game} - {invite.name} ({invite.email}) due: {due_str}\n"
        if len(pending) > limit:
            text += f"… và {len(pending) - limit} invite khác\n"
        return text

    @staticmethod
    def render_audit(entries: List[UndoLogEntry]) -> str:
        if not entries:
            return "📝 Chưa có nhật ký."
        text = f"📝 Nhật ký gần nhất ({len(entries)})\n"
        for entry in entries:
            text += f"• #{entry.id} {entry.timestamp} {entry.action} {entry.payload}\n"
        return text
