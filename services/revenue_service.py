"""
Revenue Service
Channel revenue postings. Revenue is a channel total and has no wallet effect.
"""

import logging
from typing import Callable, Optional

from models import RevenueEvent, RevenueKind
from services.audit_log import AuditLogService
from services.ledger_store import LedgerStore
from utils.datetime_helpers import format_timestamp

logger = logging.getLogger(__name__)


class RevenueService:

    def __init__(self, store: LedgerStore, audit: AuditLogService, clock: Callable):
        self.store = store
        self.audit = audit
        self.clock = clock

    async def post(
        self,
        chat_id,
        channel: str,
        amount: int,
        kind: RevenueKind,
        note: str = "",
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> RevenueEvent:
        event = await self.store.append(
            RevenueEvent,
            timestamp=format_timestamp(self.clock()),
            game=channel,
            type=kind.value,
            amount=amount,
            note=note,
            chat_id=str(chat_id),
            name=name,
            email=email,
        )
        meta = {k: v for k, v in (("name", name), ("email", email)) if v is not None}
        await self.audit.record("ADD_GAME_REVENUE", {
            "chatId": str(chat_id),
            "game": channel,
            "amount": amount,
            "type": kind.value,
            "note": note,
            "meta": meta,
        })
        logger.info(f"✅ REVENUE: {channel} {kind.value} +{amount} (chat {chat_id})")
        return event
