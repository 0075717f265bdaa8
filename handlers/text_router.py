"""
Ledger Text Router - Central routing for every inbound text
An open follow-up question always takes the message first; otherwise the text
is parsed with the command grammar and dispatched to the command handler.
"""

import logging
from typing import Optional

from telegram import Update
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from handlers.commands import LedgerCommandHandler
from handlers.follow_up import FollowUpHandler
from services.ledger_services import LedgerServices
from utils.command_grammar import parse_command
from utils.conversation_state import ConversationStateStore
from utils.exception_handler import NotFoundError, PermissionDeniedError, ValidationError, safe_telegram_handler

logger = logging.getLogger(__name__)

ROUTER_KEY = "ledger_router"


class LedgerTextRouter:
    """Routes a text to the open question of its conversation or to a command"""

    def __init__(self, services: LedgerServices, states: ConversationStateStore, admin_id: str = ""):
        self.services = services
        self.states = states
        self.commands = LedgerCommandHandler(services, states, admin_id)
        self.follow_up = FollowUpHandler(services, states)

    async def handle_text(self, chat_id, sender_id, text: Optional[str]) -> Optional[str]:
        """Return the reply for one inbound text, or None when nothing should be sent"""
        text = str(text or "").strip()
        if not text:
            return None

        try:
            question = self.states.get(chat_id)
            if question is not None:
                logger.info(f"💬 Chat {chat_id}: answering {question.kind.value}")
                return await self.follow_up.answer(chat_id, text, question)

            command = parse_command(text)
            if command is None:
                return None
            logger.info(f"🎯 Chat {chat_id}: {command.kind.value} from {sender_id}")
            return await self.commands.execute(command, chat_id, sender_id)

        except (ValidationError, PermissionDeniedError) as e:
            logger.info(f"⚠️ Chat {chat_id}: rejected '{text[:30]}': {e.message}")
            return e.message
        except NotFoundError as e:
            logger.warning(f"🔍 Chat {chat_id}: {e.message}")
            return f"❌ Lỗi: {e.message}"
        except Exception as e:
            logger.error(f"❌ Chat {chat_id}: error handling '{text[:30]}': {e}", exc_info=True)
            return f"❌ Lỗi: {e}"


@safe_telegram_handler
async def route_text_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Telegram entry point: adapt the update and send the router's reply"""
    message = update.effective_message
    chat = update.effective_chat
    if not message or not chat or not message.text:
        return

    router: LedgerTextRouter = context.application.bot_data[ROUTER_KEY]
    user = update.effective_user
    sender_id = user.id if user else None

    reply = await router.handle_text(chat.id, sender_id, message.text)
    if reply:
        await message.reply_text(reply)


def create_ledger_text_handler() -> MessageHandler:
    """Slash commands are included so an open question sees them first"""
    return MessageHandler(filters.TEXT, route_text_message, block=True)


def register_ledger_handlers(application: Application, router: LedgerTextRouter) -> None:
    application.bot_data[ROUTER_KEY] = router
    application.add_handler(create_ledger_text_handler())
    logger.info("✅ Ledger text handler registered")
