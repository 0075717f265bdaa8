"""
Follow-up answers
Handles the text that answers an open question (wallet choice or check-in reward).
"""

import logging

from services.ledger_services import LedgerServices
from services.wallet_service import WALLET_REPROMPT, normalize_wallet
from utils.conversation_state import ConversationStateStore, PendingKind, PendingQuestion
from utils.exception_handler import NotFoundError
from utils.money import format_money, parse_money

logger = logging.getLogger(__name__)

MONEY_REPROMPT = "Không parse được tiền. Ví dụ: 60k hoặc 30000"


class FollowUpHandler:

    def __init__(self, services: LedgerServices, states: ConversationStateStore):
        self.services = services
        self.states = states

    async def answer(self, chat_id, text: str, question: PendingQuestion) -> str:
        """Resolve the open question; invalid answers re-prompt and keep it open"""
        handlers = {
            PendingKind.WALLET_FOR_DEVICE: self._answer_device_wallet,
            PendingKind.WALLET_FOR_LOT: self._answer_lot_wallet,
            PendingKind.CHECKIN_REWARD: self._answer_checkin_reward,
        }
        try:
            return await handlers[question.kind](chat_id, text, question.data)
        except NotFoundError:
            # the referenced row is gone, so the question can never be answered
            logger.warning(f"⚠️ Chat {chat_id}: dropping {question.kind.value}, referenced record not found")
            self.states.clear(chat_id)
            raise

    async def _answer_device_wallet(self, chat_id, text: str, data) -> str:
        wallet = normalize_wallet(text)
        if wallet is None:
            return WALLET_REPROMPT
        code = data["phone_code"]
        price = int(data["buy_price"])
        balance = await self.services.devices.assign_wallet(code, wallet, price)
        self.states.clear(chat_id)
        return f"✅ Mua máy {code}: -{format_money(price)} từ ví {wallet}. Balance: {format_money(balance)}"

    async def _answer_lot_wallet(self, chat_id, text: str, data) -> str:
        wallet = normalize_wallet(text)
        if wallet is None:
            return WALLET_REPROMPT
        total_cost = int(data["total_cost"])
        lot, balance = await self.services.lots.assign_wallet(int(data["lot_row_id"]), wallet, total_cost)
        self.states.clear(chat_id)
        return f"✅ Mua lô {lot.lot_id}: -{format_money(total_cost)} từ ví {wallet}. Balance: {format_money(balance)}"

    async def _answer_checkin_reward(self, chat_id, text: str, data) -> str:
        reward = parse_money(text)
        if reward is None:
            return MONEY_REPROMPT
        channel = data["game"]
        name = data["name"]
        await self.services.invites.complete_checkin(chat_id, channel, name, data.get("email"), reward)
        self.states.clear(chat_id)
        return f"✅ Checkin {channel} {name}: +{format_money(reward)}"
