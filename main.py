#!/usr/bin/env python3
"""
Deterministic startup for the TikTok Lite ledger bot

Sequence:
- Validate configuration (fatal on error)
- Prepare the store and report missing tables
- Build services, register the text router, publish the command menu
- Start the due-date scheduler and poll for updates
"""

import logging
import sys
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine
from telegram.ext import Application

from config import Config
from database import create_engine_for_url, create_session_factory, prepare_store
from handlers.text_router import LedgerTextRouter, register_ledger_handlers
from jobs.scheduler import LedgerScheduler
from services.ledger_services import build_ledger_services
from utils.bot_commands import initialize_bot_commands
from utils.conversation_state import ConversationStateStore
from utils.datetime_helpers import LedgerClock
from utils.exception_handler import ConfigurationError

logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
# httpx logs every polling request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


class LedgerStartupManager:
    """Owns the engine, application and scheduler for one bot process"""

    def __init__(self):
        self.application: Optional[Application] = None
        self.engine: Optional[AsyncEngine] = None
        self.scheduler: Optional[LedgerScheduler] = None

    def create_application(self) -> Application:
        logger.info("🤖 Creating Telegram application...")
        self.application = (
            Application.builder()
            .token(Config.BOT_TOKEN)
            .post_init(self.post_init)
            .post_shutdown(self.post_shutdown)
            .build()
        )
        return self.application

    async def post_init(self, application: Application) -> None:
        """Runs inside the bot's event loop before polling starts"""
        tz = Config.get_timezone()

        logger.info("🗄️ Preparing ledger store...")
        self.engine = create_engine_for_url(Config.DATABASE_URL)
        available = await prepare_store(self.engine, auto_create=Config.DB_AUTO_CREATE)

        services = build_ledger_services(create_session_factory(self.engine), available, LedgerClock(tz))
        states = ConversationStateStore()
        router = LedgerTextRouter(services, states, Config.ADMIN_TELEGRAM_ID)
        register_ledger_handlers(application, router)

        await initialize_bot_commands(application)

        self.scheduler = LedgerScheduler(application, services, states, tz)
        self.scheduler.start()
        logger.info("🎉 Ledger bot startup complete")

    async def post_shutdown(self, application: Application) -> None:
        if self.scheduler:
            self.scheduler.stop()
        if self.engine:
            await self.engine.dispose()
            logger.info("🗄️ Database engine disposed")


def main() -> None:
    try:
        Config.validate_startup_configuration()
    except ConfigurationError as e:
        logger.error(f"❌ {e.message}")
        sys.exit(1)

    Config.log_environment_config()
    manager = LedgerStartupManager()
    application = manager.create_application()

    logger.info("📡 Starting in polling mode...")
    application.run_polling()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("👋 Bot stopped by user")
