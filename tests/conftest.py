"""
Shared fixtures for the ledger bot tests

1. Per-test SQLite file database (aiosqlite) with every ledger table created
2. Controllable clock in Asia/Seoul
3. Service container, conversation state and text router
4. Telegram object factories for the handler adapter tests
"""

import logging
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, Mock
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from telegram import Chat, Message, Update, User
from telegram.ext import ContextTypes

from database import create_engine_for_url, create_session_factory, prepare_store
from handlers.text_router import ROUTER_KEY, LedgerTextRouter
from services.ledger_services import build_ledger_services
from utils.conversation_state import ConversationStateStore
from utils.datetime_helpers import LedgerClock

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

TEST_TZ = ZoneInfo("Asia/Seoul")
ADMIN_ID = "999"
CHAT_ID = "12345"


class FrozenNow:
    """Manually advanced time source"""

    def __init__(self, start: datetime):
        self.value = start

    def __call__(self) -> datetime:
        return self.value

    def advance(self, **kwargs) -> datetime:
        self.value = self.value + timedelta(**kwargs)
        return self.value

    def set(self, value: datetime) -> None:
        self.value = value


@pytest.fixture
def frozen_now():
    return FrozenNow(datetime(2024, 5, 1, 9, 0, tzinfo=TEST_TZ))


@pytest.fixture
def clock(frozen_now):
    return LedgerClock(TEST_TZ, now_func=frozen_now)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path}/ledger.db")
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def services(engine, clock):
    available = await prepare_store(engine, auto_create=True)
    return build_ledger_services(create_session_factory(engine), available, clock)


@pytest.fixture
def states():
    return ConversationStateStore()


@pytest.fixture
def router(services, states):
    return LedgerTextRouter(services, states, admin_id=ADMIN_ID)


@pytest.fixture
def send():
    return AsyncMock()


def _make_update(text: str, chat_id: int = int(CHAT_ID), user_id: int = 111) -> Update:
    """Mock Telegram update whose message reply is recorded"""
    user = User(id=user_id, is_bot=False, first_name="Test", username="testuser")
    chat = Chat(id=chat_id, type="private")
    message = Mock(spec=Message)
    message.text = text
    message.chat = chat
    message.from_user = user
    message.reply_text = AsyncMock()

    update = Mock(spec=Update)
    update.effective_user = user
    update.effective_chat = chat
    update.effective_message = message
    update.message = message
    return update


def _make_context(router: LedgerTextRouter):
    context = Mock(spec=ContextTypes.DEFAULT_TYPE)
    context.application = Mock()
    context.application.bot_data = {ROUTER_KEY: router}
    return context


@pytest.fixture
def make_update():
    return _make_update


@pytest.fixture
def make_context():
    return _make_context
