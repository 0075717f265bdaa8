"""
Invite Service
Invite tracking with a fixed 14-day check-in window.

Check-in completion matches the pending invite best-effort: same channel, and
either the email (case-insensitive, when given) or the name (case-insensitive).
When several invites match, the most recently invited one wins. Two people
sharing a name in one channel are therefore ambiguous; this is deliberate and
kept as-is.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from config import Config
from models import CheckinRewardRecord, Invite, InviteStatus, RevenueKind
from services.audit_log import AuditLogService
from services.ledger_store import LedgerStore
from services.revenue_service import RevenueService
from utils.datetime_helpers import LedgerClock, format_timestamp, parse_timestamp
from utils.entity_locks import KeyedLocks
from utils.exception_handler import NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class PendingInvite:
    invite: Invite
    due: Optional[datetime]
    overdue: bool


def is_pending(invite: Invite) -> bool:
    return str(invite.status or "").lower() == InviteStatus.PENDING.value


class InviteService:

    def __init__(
        self,
        store: LedgerStore,
        revenue: RevenueService,
        audit: AuditLogService,
        clock: LedgerClock,
        locks: KeyedLocks,
    ):
        self.store = store
        self.revenue = revenue
        self.audit = audit
        self.clock = clock
        self.locks = locks

    def _invited_instant(self, invite: Invite) -> float:
        dt = parse_timestamp(invite.time_invited or invite.timestamp, self.clock.tz)
        return dt.timestamp() if dt else float("-inf")

    async def create_invite(self, chat_id, channel: str, name: str, email: str) -> Invite:
        """Record a new pending invite due INVITE_CHECKIN_DAYS after now"""
        invited_at = self.clock()
        due = invited_at + timedelta(days=Config.INVITE_CHECKIN_DAYS)

        async with self.locks.hold(f"invite:{channel}"):
            invite = await self.store.append(
                Invite,
                timestamp=format_timestamp(invited_at),
                game=channel,
                name=name,
                email=email,
                time_invited=format_timestamp(invited_at),
                due_date=format_timestamp(due),
                status=InviteStatus.PENDING.value,
                chat_id=str(chat_id),
                last_reminded_at=None,
            )
            await self.audit.record("ADD_INVITE", {
                "chatId": str(chat_id),
                "game": channel,
                "name": name,
                "email": email,
                "time_invited": invite.time_invited,
                "due_date": invite.due_date,
            })

        logger.info(f"✅ INVITE: {channel} {name} <{email}> due {invite.due_date}")
        return invite

    def _matches(self, invite: Invite, channel: str, name: str, email: Optional[str]) -> bool:
        if not is_pending(invite) or str(invite.game or "").lower() != channel:
            return False
        if email and str(invite.email or "").lower() == email.lower():
            return True
        return str(invite.name or "").lower() == str(name or "").lower()

    async def find_pending_match(self, channel: str, name: str, email: Optional[str]) -> Invite:
        rows = await self.store.fetch_all(Invite)
        candidates = [r for r in rows if self._matches(r, channel, name, email)]
        if not candidates:
            raise NotFoundError(f"Không tìm thấy invite pending cho {channel} {name}")
        # most recent invited-at first, later row on ties
        candidates.sort(key=lambda r: (self._invited_instant(r), r.id), reverse=True)
        return candidates[0]

    async def complete_checkin(self, chat_id, channel: str, name: str, email: Optional[str], reward: int) -> Invite:
        """Flip the matching pending invite to done and post its check-in reward"""
        async with self.locks.hold(f"invite:{channel}"):
            target = await self.find_pending_match(channel, name, email)

            await self.store.append(
                CheckinRewardRecord,
                timestamp=format_timestamp(self.clock()),
                game=channel,
                name=target.name,
                email=target.email,
                reward=reward,
                due_date=target.due_date,
                chat_id=str(chat_id),
            )

            await self.revenue.post(
                chat_id, channel, reward, RevenueKind.CHECKIN_REWARD,
                note=f"checkin {Config.INVITE_CHECKIN_DAYS} ngày: {target.name}",
                name=target.name, email=target.email,
            )

            target.status = InviteStatus.DONE.value
            target.checkin_reward = reward
            target.completed_at = format_timestamp(self.clock())
            await self.store.save(target)

            await self.audit.record("DONE_INVITE_CHECKIN", {
                "inviteRowId": target.id,
                "chatId": str(chat_id),
                "game": channel,
                "reward": reward,
            })

        logger.info(f"✅ CHECKIN: {channel} {target.name} +{reward} (invite #{target.id})")
        return target

    async def pending_invites(self) -> List[PendingInvite]:
        """Pending invites sorted by due date; unparseable due dates sort last"""
        now = self.clock()
        pending = []
        for invite in await self.store.fetch_all(Invite):
            if not is_pending(invite):
                continue
            due = parse_timestamp(invite.due_date, self.clock.tz)
            pending.append(PendingInvite(invite=invite, due=due, overdue=due is not None and due < now))
        pending.sort(key=lambda p: (p.due is None, p.due.timestamp() if p.due else 0.0, p.invite.id))
        return pending

    async def reload_pending(self, invite_id: int) -> Optional[Invite]:
        """Fresh copy of the invite, or None once it is gone or no longer pending"""
        invite = await self.store.get(Invite, invite_id)
        return invite if invite is not None and is_pending(invite) else None

    async def mark_reminded(self, invite_id: int, when: datetime) -> bool:
        """
        Stamp last_reminded_at on a still-pending invite. Touches no other
        column, so a check-in completed meanwhile is never written back.
        """
        return await self.store.update_fields(
            Invite, invite_id,
            Invite.status == InviteStatus.PENDING.value,
            last_reminded_at=format_timestamp(when),
        )
