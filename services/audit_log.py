"""
Audit Log Service
Append-only record of operation intent. Nothing replays it; it only answers
read-only audit queries.
"""

import json
import logging
from typing import Any, Callable, Dict, List

from models import UndoLogEntry
from services.ledger_store import LedgerStore
from utils.datetime_helpers import format_timestamp

logger = logging.getLogger(__name__)


class AuditLogService:
    """Writes and reads the undo_log table"""

    def __init__(self, store: LedgerStore, clock: Callable):
        self.store = store
        self.clock = clock

    async def record(self, action: str, payload: Dict[str, Any]) -> UndoLogEntry:
        entry = await self.store.append(
            UndoLogEntry,
            timestamp=format_timestamp(self.clock()),
            action=action,
            payload=json.dumps(payload, ensure_ascii=False, default=str),
        )
        logger.debug(f"📝 AUDIT: {action} #{entry.id}")
        return entry

    async def recent(self, limit: int) -> List[UndoLogEntry]:
        """Latest entries, newest first"""
        entries = await self.store.fetch_all(UndoLogEntry)
        return list(reversed(entries))[:limit]
