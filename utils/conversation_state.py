"""
Per-conversation follow-up state

A conversation is either idle or waiting for the answer to one question. While
a question is open, every inbound text of that conversation is the answer.
State is process-lifetime only and is lost on restart.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class PendingKind(Enum):
    WALLET_FOR_DEVICE = "ask_wallet_for_phone"
    WALLET_FOR_LOT = "ask_wallet_for_lot"
    CHECKIN_REWARD = "ask_checkin_reward"


@dataclass
class PendingQuestion:
    kind: PendingKind
    data: Dict[str, Any]
    opened_at: float = field(default_factory=time.time)


class ConversationStateStore:
    """Keyed store of open questions, one per conversation id"""

    def __init__(self):
        self._pending: Dict[str, PendingQuestion] = {}

    @staticmethod
    def _key(chat_id) -> str:
        return str(chat_id)

    def get(self, chat_id) -> Optional[PendingQuestion]:
        return self._pending.get(self._key(chat_id))

    def is_awaiting(self, chat_id) -> bool:
        return self._key(chat_id) in self._pending

    def open(self, chat_id, kind: PendingKind, **data) -> PendingQuestion:
        """Open a question, replacing whatever was outstanding for this conversation"""
        key = self._key(chat_id)
        previous = self._pending.get(key)
        if previous is not None:
            logger.info(f"🔁 Chat {key}: replacing open question {previous.kind.value} with {kind.value}")
        question = PendingQuestion(kind=kind, data=dict(data))
        self._pending[key] = question
        logger.debug(f"Set pending question {kind.value} for chat {key}")
        return question

    def clear(self, chat_id) -> None:
        if self._pending.pop(self._key(chat_id), None) is not None:
            logger.debug(f"Cleared pending question for chat {chat_id}")

    def __len__(self) -> int:
        return len(self._pending)
