"""
Bot Commands Setup - Telegram Bot Menu Configuration
Publishes the slash commands of the ledger bot
"""

import logging
from typing import List

from telegram import BotCommand
from telegram.ext import Application

logger = logging.getLogger(__name__)


class BotCommandsManager:
    """Manages the Telegram command menu"""

    COMMANDS: List[BotCommand] = [
        BotCommand("start", "🚀 Cú pháp nhanh"),
        BotCommand("help", "❓ Danh sách lệnh"),
        BotCommand("baocao", "📊 Báo cáo tháng (baocao YYYY-MM)"),
        BotCommand("pending", "🕒 Invite đang chờ checkin"),
        BotCommand("audit", "📝 Nhật ký thao tác gần nhất"),
        BotCommand("undo", "↩️ Thao tác gần nhất"),
    ]

    @classmethod
    async def setup_bot_commands(cls, application: Application) -> bool:
        """
        Set up the bot commands menu that appears in Telegram

        Returns:
            bool: True if commands were set successfully
        """
        try:
            await application.bot.set_my_commands(cls.COMMANDS)
            logger.info(f"✅ Bot commands menu configured: {', '.join(cmd.command for cmd in cls.COMMANDS)}")
            return True
        except Exception as e:
            logger.error(f"❌ Failed to set up bot commands: {e}")
            return False


async def initialize_bot_commands(application: Application) -> bool:
    return await BotCommandsManager.setup_bot_commands(application)
