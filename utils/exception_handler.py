"""
Exception Handler Module
Ledger error taxonomy and the handler decorator that keeps the bot alive
"""

import logging
import functools
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for all ledger failures"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(LedgerError):
    """Missing or invalid startup configuration - fatal"""


class ValidationError(LedgerError):
    """Custom validation error for input validation failures

    The message is the corrective reply shown to the operator.
    """


class PermissionDeniedError(LedgerError):
    """Sender is not allowed to run the command"""


class NotFoundError(LedgerError):
    """No matching invite, device or lot"""


class StoreError(LedgerError):
    """Underlying store operation failed"""


class MissingTableError(StoreError):
    """Operation needs a table that is unavailable in the store"""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Missing table {table}")


def safe_telegram_handler(func: Callable) -> Callable:
    """
    Decorator to safely handle telegram handler functions
    Catches exceptions and logs them without crashing the bot
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> Optional[Any]:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error in telegram handler {func.__name__}: {type(e).__name__}: {e}")
            return None

    return wrapper
