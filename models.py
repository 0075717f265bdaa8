"""
TikTok Lite Ledger - Database Schema
====================================

One table per ledger sheet:
- wallets / wallet_log: funding wallets and their append-only movements
- phones / phone_profit_log: single device purchases and their resolution
- lots / lot_result: batch purchases and their recorded outcomes
- invites / checkin_reward: 14-day invite tracking and completed check-ins
- game_revenue: every revenue posting, the unit of monthly reporting
- undo_log: intent-only audit trail of every mutation
- settings: free key/value table, not used by the ledger logic

The integer primary key `id` is the stable row identifier. Timestamps are
ISO-8601 strings with the local offset, see utils.datetime_helpers.
"""

from enum import Enum
from typing import Optional
from sqlalchemy import BigInteger, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# ============================================================================
# ENUMS - Business Logic Constants
# ============================================================================

class Channel(Enum):
    """Revenue channels"""
    DABONG = "db"
    HOPQUA = "hq"
    QR = "qr"
    OTHER = "other"


class RevenueKind(Enum):
    """Kinds of revenue postings"""
    INVITE_REWARD = "invite_reward"
    CHECKIN_REWARD = "checkin_reward"
    OTHER_INCOME = "other_income"


class InviteStatus(Enum):
    PENDING = "pending"
    DONE = "done"


class DeviceStatus(Enum):
    BOUGHT = "bought"
    OK = "ok"


class WalletEntryKind(Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    ADMIN_SET = "admin_set"


# ============================================================================
# WALLETS
# ============================================================================

class WalletAccount(Base):
    """Denormalized wallet balance, always equal to the sum of its log entries"""
    __tablename__ = 'wallets'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    balance: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)


class WalletLedgerEntry(Base):
    """Immutable wallet movement"""
    __tablename__ = 'wallet_log'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False)
    wallet: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)  # signed delta
    type: Mapped[str] = mapped_column(String(16), nullable=False)  # credit|debit|admin_set
    ref: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)


# ============================================================================
# DEVICES (PHONES) AND LOTS
# ============================================================================

class Device(Base):
    """A single purchased phone; codes are not unique, latest purchase wins"""
    __tablename__ = 'phones'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False)
    phone_code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    buy_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    buy_date: Mapped[str] = mapped_column(String(40), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=DeviceStatus.BOUGHT.value, nullable=False)
    wallet: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    chat_id: Mapped[str] = mapped_column(String(32), nullable=False)

    # Filled when the phone is resolved
    game_source: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    game_amount: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    profit: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    ok_at: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)


class DeviceProfitRecord(Base):
    """Audit snapshot written when a phone is resolved"""
    __tablename__ = 'phone_profit_log'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False)
    phone_code: Mapped[str] = mapped_column(String(64), nullable=False)
    buy_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    game_source: Mapped[str] = mapped_column(String(32), nullable=False)
    game_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    profit: Mapped[int] = mapped_column(BigInteger, nullable=False)


class Lot(Base):
    """Batch purchase of several phones"""
    __tablename__ = 'lots'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False)
    lot_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    qty: Mapped[int] = mapped_column(Integer, nullable=False)
    total_cost: Mapped[int] = mapped_column(BigInteger, nullable=False)
    date: Mapped[str] = mapped_column(String(40), nullable=False)
    wallet: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    chat_id: Mapped[str] = mapped_column(String(32), nullable=False)


class LotResult(Base):
    """Recorded outcome of a lot; total_reward/profit are empty until the reward is known"""
    __tablename__ = 'lot_result'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False)
    lot_id: Mapped[str] = mapped_column(String(32), nullable=False)
    lot_row: Mapped[int] = mapped_column(Integer, nullable=False)
    qty: Mapped[int] = mapped_column(Integer, nullable=False)
    total_cost: Mapped[int] = mapped_column(BigInteger, nullable=False)
    ok: Mapped[int] = mapped_column(Integer, nullable=False)
    tach: Mapped[int] = mapped_column(Integer, nullable=False)
    game: Mapped[str] = mapped_column(String(32), nullable=False)
    total_reward: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    profit: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)


# ============================================================================
# INVITES AND REVENUE
# ============================================================================

class Invite(Base):
    """Invite waiting for its 14-day check-in"""
    __tablename__ = 'invites'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False)
    game: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    time_invited: Mapped[str] = mapped_column(String(40), nullable=False)
    due_date: Mapped[str] = mapped_column(String(40), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=InviteStatus.PENDING.value, nullable=False, index=True)
    chat_id: Mapped[str] = mapped_column(String(32), nullable=False)
    last_reminded_at: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # Filled on check-in
    checkin_reward: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    completed_at: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)


class CheckinRewardRecord(Base):
    """Audit snapshot written when an invite is checked in"""
    __tablename__ = 'checkin_reward'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False)
    game: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    reward: Mapped[int] = mapped_column(BigInteger, nullable=False)
    due_date: Mapped[str] = mapped_column(String(40), nullable=False)
    chat_id: Mapped[str] = mapped_column(String(32), nullable=False)


class RevenueEvent(Base):
    """Revenue posting per channel"""
    __tablename__ = 'game_revenue'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    game: Mapped[str] = mapped_column(String(32), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)
    chat_id: Mapped[str] = mapped_column(String(32), nullable=False)

    # Optional extra attributes
    name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class UndoLogEntry(Base):
    """Intent-only audit trail; nothing replays it"""
    __tablename__ = 'undo_log'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[str] = mapped_column(Text, default="{}", nullable=False)


class Setting(Base):
    """Free-form settings sheet"""
    __tablename__ = 'settings'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[str] = mapped_column(Text, default="", nullable=False)


LEDGER_MODELS = (
    Setting, WalletAccount, WalletLedgerEntry, Device, Lot, LotResult,
    DeviceProfitRecord, Invite, CheckinRewardRecord, RevenueEvent, UndoLogEntry,
)
