"""
Command Grammar
Tagged grammar for the free-text ledger commands.

Each command shape is a matcher taking the token list and returning a Command
or None. Shapes are tried in COMMAND_SHAPES order and the first match wins:

    1. start / help / baocao [YYYY-MM] / pending / undo / audit [n]
    2. dabong|db <amount>
    3. hopqua|hq <amount>  |  hopqua|hq <name> <email>
    4. qr <amount>         |  qr <name> <email>
    5. them <amount>
    6. chinh <wallet> <amount>                (admin only, checked by the router)
    7. mua <N>may <amount>
    8. <code> <amount>                        (exactly 2 tokens, code alphanumeric)
    9. <code> ok <channel><amount>
   10. <N>may <channel><amount> tach<K>      (tach token 3rd or 4th)
       <N>may hq|qr|db ok tach<K>
   11. anything else -> UNKNOWN

A keyword shape that recognises its keyword but not its arguments returns an
INVALID command carrying the usage reply, so a keyword never falls through to
the generic phone purchase shape.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from models import Channel, RevenueKind
from utils.channels import normalize_channel
from utils.money import parse_money, split_channel_amount

ALNUM_PATTERN = re.compile(r"^[a-z0-9]+$", re.IGNORECASE)
QTY_PATTERN = re.compile(r"^(\d+)may$", re.IGNORECASE)
TACH_PATTERN = re.compile(r"^tach(\d+)$", re.IGNORECASE)
MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

RESERVED_KEYWORDS = frozenset({
    "start", "help", "baocao", "pending", "undo", "audit",
    "dabong", "db", "hopqua", "hq", "qr", "them", "chinh", "mua",
})

LOT_RESULT_CHANNELS = ("hq", "qr", "db")


class CommandKind(Enum):
    START = "start"
    HELP = "help"
    REPORT = "report"
    PENDING = "pending"
    UNDO = "undo"
    AUDIT = "audit"
    POST_REVENUE = "post_revenue"
    CREATE_INVITE = "create_invite"
    SET_WALLET = "set_wallet"
    BUY_DEVICE = "buy_device"
    RESOLVE_DEVICE = "resolve_device"
    BUY_LOT = "buy_lot"
    LOT_RESULT = "lot_result"
    INVALID = "invalid"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    args: Dict[str, Any] = field(default_factory=dict)
    usage: str = ""


def tokenize(text: Optional[str]) -> List[str]:
    return str(text or "").strip().split()


def keyword(token: str) -> str:
    """Command keyword: lower-cased, '/' prefix and '@botname' suffix removed"""
    kw = token.lower()
    if kw.startswith("/"):
        kw = kw[1:].split("@", 1)[0]
    return kw


def _invalid(usage: str) -> Command:
    return Command(CommandKind.INVALID, usage=usage)


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------

def match_static(tokens: Sequence[str]) -> Optional[Command]:
    kw = keyword(tokens[0])
    if kw == "start":
        return Command(CommandKind.START)
    if kw == "help":
        return Command(CommandKind.HELP)
    if kw == "pending":
        return Command(CommandKind.PENDING)
    if kw == "undo":
        return Command(CommandKind.UNDO)
    if kw == "baocao":
        if len(tokens) < 2:
            return Command(CommandKind.REPORT, {"month": None})
        if MONTH_PATTERN.match(tokens[1]):
            return Command(CommandKind.REPORT, {"month": tokens[1]})
        return _invalid("Sai cú pháp. Ví dụ: baocao hoặc baocao 2024-05")
    if kw == "audit":
        if len(tokens) < 2:
            return Command(CommandKind.AUDIT, {"limit": None})
        if tokens[1].isdigit() and int(tokens[1]) > 0:
            return Command(CommandKind.AUDIT, {"limit": int(tokens[1])})
        return _invalid("Sai cú pháp. Ví dụ: audit hoặc audit 20")
    return None


def _revenue(channel: str, note: str, amount: int, kind: RevenueKind = RevenueKind.INVITE_REWARD) -> Command:
    return Command(CommandKind.POST_REVENUE, {
        "channel": channel, "amount": amount, "kind": kind, "note": note,
    })


def match_dabong(tokens: Sequence[str]) -> Optional[Command]:
    if keyword(tokens[0]) not in ("dabong", "db"):
        return None
    amount = parse_money(tokens[1]) if len(tokens) > 1 else None
    if amount is None:
        return _invalid("Sai cú pháp. Ví dụ: dabong 100k")
    return _revenue(Channel.DABONG.value, "dabong invite reward", amount)


def _match_invite_channel(tokens: Sequence[str], aliases, channel: str, label: str) -> Optional[Command]:
    if keyword(tokens[0]) not in aliases:
        return None
    usage = f"Sai cú pháp. Ví dụ: {label} 200k hoặc {label} Khanh mail@gmail.com"
    if len(tokens) == 2:
        amount = parse_money(tokens[1])
        if amount is None:
            return _invalid(usage)
        return _revenue(channel, f"{label} invite reward", amount)
    if len(tokens) >= 3:
        return Command(CommandKind.CREATE_INVITE, {
            "channel": channel, "name": tokens[1], "email": tokens[2],
        })
    return _invalid(usage)


def match_hopqua(tokens: Sequence[str]) -> Optional[Command]:
    return _match_invite_channel(tokens, ("hopqua", "hq"), Channel.HOPQUA.value, "hopqua")


def match_qr(tokens: Sequence[str]) -> Optional[Command]:
    return _match_invite_channel(tokens, ("qr",), Channel.QR.value, "qr")


def match_them(tokens: Sequence[str]) -> Optional[Command]:
    if keyword(tokens[0]) != "them":
        return None
    amount = parse_money(tokens[1]) if len(tokens) > 1 else None
    if amount is None:
        return _invalid("Sai cú pháp. Ví dụ: them 0.5k")
    return _revenue(Channel.OTHER.value, "other income", amount, RevenueKind.OTHER_INCOME)


def match_chinh(tokens: Sequence[str]) -> Optional[Command]:
    """Arguments are validated by the router after the admin check"""
    if keyword(tokens[0]) != "chinh":
        return None
    wallet = tokens[1].lower() if len(tokens) > 1 else ""
    amount = parse_money(tokens[2]) if len(tokens) > 2 else None
    return Command(
        CommandKind.SET_WALLET,
        {"wallet": wallet, "amount": amount},
        usage="Sai cú pháp. Ví dụ: chinh hana 500k",
    )


def match_buy_lot(tokens: Sequence[str]) -> Optional[Command]:
    if keyword(tokens[0]) != "mua":
        return None
    qty_match = QTY_PATTERN.match(tokens[1]) if len(tokens) > 1 else None
    qty = int(qty_match.group(1)) if qty_match else 0
    total_cost = parse_money(tokens[2]) if len(tokens) > 2 else None
    if not qty or total_cost is None:
        return _invalid("Sai cú pháp. Ví dụ: mua 5may 120k")
    return Command(CommandKind.BUY_LOT, {"qty": qty, "total_cost": total_cost})


def _is_device_code(token: str) -> bool:
    return bool(ALNUM_PATTERN.match(token)) and token.lower() not in RESERVED_KEYWORDS


def match_buy_device(tokens: Sequence[str]) -> Optional[Command]:
    if len(tokens) != 2 or not _is_device_code(tokens[0]):
        return None
    price = parse_money(tokens[1])
    if price is None:
        return None
    return Command(CommandKind.BUY_DEVICE, {"phone_code": tokens[0], "buy_price": price})


def match_resolve_device(tokens: Sequence[str]) -> Optional[Command]:
    if len(tokens) < 3 or not _is_device_code(tokens[0]) or tokens[1].lower() != "ok":
        return None
    split = split_channel_amount(tokens[2])
    if split is None:
        return _invalid("Sai cú pháp. Ví dụ: ssa34 ok hopqua100k")
    channel, amount = split
    return Command(CommandKind.RESOLVE_DEVICE, {
        "phone_code": tokens[0], "game_source": normalize_channel(channel), "game_amount": amount,
    })


def _tach_count(token: str) -> int:
    match = TACH_PATTERN.match(token)
    return int(match.group(1)) if match else 0


def match_lot_result(tokens: Sequence[str]) -> Optional[Command]:
    qty_match = QTY_PATTERN.match(tokens[0])
    if not qty_match:
        return None
    n = int(qty_match.group(1))
    token2, token3, token4 = (list(t.lower() for t in tokens[1:4]) + ["", "", ""])[:3]

    # 5may hh800k tach1  /  5may hh800k x tach1
    split = split_channel_amount(token2)
    if split and (token3.startswith("tach") or token4.startswith("tach")):
        tach = _tach_count(token3 if token3.startswith("tach") else token4)
        ok = n - tach
        if ok < 0:
            return _invalid("Sai cú pháp. Ví dụ: 5may hh800k tach1")
        channel, reward = split
        return Command(CommandKind.LOT_RESULT, {
            "ok": ok, "tach": tach, "game": normalize_channel(channel), "total_reward": reward,
        })

    # 4may hq ok tach1
    if token2 in LOT_RESULT_CHANNELS and token3 == "ok" and token4.startswith("tach"):
        return Command(CommandKind.LOT_RESULT, {
            "ok": n, "tach": _tach_count(token4), "game": normalize_channel(token2), "total_reward": None,
        })
    return None


COMMAND_SHAPES: Sequence[Callable[[Sequence[str]], Optional[Command]]] = (
    match_static,
    match_dabong,
    match_hopqua,
    match_qr,
    match_them,
    match_chinh,
    match_buy_lot,
    match_buy_device,
    match_resolve_device,
    match_lot_result,
)


def parse_command(text: Optional[str]) -> Optional[Command]:
    """Match text against the grammar; None for empty input"""
    tokens = tokenize(text)
    if not tokens:
        return None
    for shape in COMMAND_SHAPES:
        command = shape(tokens)
        if command is not None:
            return command
    return Command(CommandKind.UNKNOWN)
