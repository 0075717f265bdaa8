"""
Money token parsing and formatting
All ledger amounts are integers in the single implicit unit
"""

import logging
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

MONEY_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)(k)?$")

# channel prefix + amount, e.g. hopqua100k / hh800k / qr57.5k
CHANNEL_AMOUNT_PATTERN = re.compile(r"^([a-z]+)(\d+(?:\.\d+)?k?)$", re.IGNORECASE)


def parse_money(token: Optional[str]) -> Optional[int]:
    """
    Parse a free-text amount token.

    100k => 100000, 0.5k => 500, 1,000 => 1000, 120000 => 120000.
    Returns None when the token is empty or not fully of the form
    digits[.digits][k].
    """
    if token is None:
        return None
    s = str(token).strip().lower().replace(",", "")
    if not s:
        return None
    match = MONEY_PATTERN.match(s)
    if not match:
        return None
    # long digit strings need more than the default 28 digits of precision
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(s) + 4)
        try:
            value = Decimal(match.group(1))
            if match.group(2):
                value *= 1000
            return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        except InvalidOperation:
            return None


def split_channel_amount(token: Optional[str]) -> Optional[Tuple[str, int]]:
    """
    Split a compound token like 'hopqua100k' into ('hopqua', 100000).

    The channel part is returned lower-cased and not normalized.
    """
    if not token:
        return None
    match = CHANNEL_AMOUNT_PATTERN.match(str(token).strip())
    if not match:
        return None
    amount = parse_money(match.group(2))
    if amount is None:
        return None
    return match.group(1).lower(), amount


def format_money(amount: Optional[int]) -> str:
    """Thousands-separated amount, '' for None"""
    if amount is None:
        return ""
    return f"{int(amount):,}"
