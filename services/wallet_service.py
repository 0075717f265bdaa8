"""
Wallet Service
Funding wallet balances and their movement log.

Invariant: a wallet's stored balance equals the sum of its wallet_log amounts
in append order. Every balance change writes exactly one log entry, and the
admin override logs the delta even though it stores an absolute balance.
"""

import logging
from typing import Callable, Dict, Optional, Tuple

from config import Config
from models import WalletAccount, WalletEntryKind, WalletLedgerEntry
from services.ledger_store import LedgerStore
from utils.datetime_helpers import format_timestamp
from utils.entity_locks import KeyedLocks
from utils.exception_handler import ValidationError

logger = logging.getLogger(__name__)

WALLET_PROMPT = "Tiền từ ví nào? (" + "/".join(Config.WALLETS) + ")"
WALLET_REPROMPT = "Chỉ nhận: " + " / ".join(Config.WALLETS) + ". Nhập lại:"


def normalize_wallet(name: Optional[str]) -> Optional[str]:
    """Lower-cased wallet name, or None when it is not one of the known wallets"""
    wallet = str(name or "").strip().lower()
    return wallet if wallet in Config.WALLETS else None


class WalletService:
    """Balance mutations; callers never write wallet rows directly"""

    def __init__(self, store: LedgerStore, clock: Callable, locks: KeyedLocks):
        self.store = store
        self.clock = clock
        self.locks = locks

    async def _find_or_create(self, wallet: str) -> WalletAccount:
        rows = await self.store.fetch_all(WalletAccount)
        for row in rows:
            if str(row.wallet or "").lower() == wallet:
                return row
        logger.info(f"💼 Creating wallet account {wallet}")
        return await self.store.append(WalletAccount, wallet=wallet, balance=0)

    async def _log(self, wallet: str, delta: int, kind: WalletEntryKind, ref: str, note: str) -> None:
        await self.store.append(
            WalletLedgerEntry,
            timestamp=format_timestamp(self.clock()),
            wallet=wallet,
            amount=delta,
            type=kind.value,
            ref=ref,
            note=note,
        )

    def require_wallet(self, wallet: str) -> str:
        """Normalized wallet name; raises before anything is written if it cannot be funded"""
        normalized = normalize_wallet(wallet)
        if normalized is None:
            raise ValidationError(WALLET_REPROMPT)
        # balance and log move together or not at all
        self.store.require(WalletAccount, WalletLedgerEntry)
        return normalized

    async def adjust(self, wallet: str, delta: int, ref: str = "", note: str = "") -> int:
        """Apply a signed delta and return the new balance"""
        wallet = self.require_wallet(wallet)
        async with self.locks.hold(f"wallet:{wallet}"):
            row = await self._find_or_create(wallet)
            current = int(row.balance or 0)
            row.balance = current + delta
            await self.store.save(row)
            kind = WalletEntryKind.DEBIT if delta < 0 else WalletEntryKind.CREDIT
            await self._log(wallet, delta, kind, ref, note)

        logger.info(f"✅ WALLET: {wallet} {delta:+d} ({ref}) -> {row.balance}")
        return row.balance

    async def set_balance(self, wallet: str, target: int) -> Tuple[int, int]:
        """Admin override: store an absolute balance, log the delta. Returns (balance, delta)"""
        wallet = self.require_wallet(wallet)
        async with self.locks.hold(f"wallet:{wallet}"):
            row = await self._find_or_create(wallet)
            current = int(row.balance or 0)
            delta = target - current
            row.balance = target
            await self.store.save(row)
            await self._log(wallet, delta, WalletEntryKind.ADMIN_SET, "ADMIN_SET", f"set balance to {target}")

        logger.info(f"✅ WALLET_ADMIN_SET: {wallet} = {target} (delta {delta:+d})")
        return target, delta

    async def balances(self) -> Dict[str, int]:
        rows = await self.store.fetch_all(WalletAccount)
        return {str(row.wallet).lower(): int(row.balance or 0) for row in rows}

    async def replayed_balances(self) -> Dict[str, int]:
        """Balances recomputed from the movement log"""
        totals: Dict[str, int] = {}
        for entry in await self.store.fetch_all(WalletLedgerEntry):
            key = str(entry.wallet).lower()
            totals[key] = totals.get(key, 0) + int(entry.amount or 0)
        return totals

    async def drifted_wallets(self) -> Dict[str, Tuple[int, int]]:
        """Wallets whose stored balance differs from the replayed log: {wallet: (stored, replayed)}"""
        stored = await self.balances()
        replayed = await self.replayed_balances()
        drift = {}
        for wallet in set(stored) | set(replayed):
            if stored.get(wallet, 0) != replayed.get(wallet, 0):
                drift[wallet] = (stored.get(wallet, 0), replayed.get(wallet, 0))
        if drift:
            logger.error(f"❌ WALLET_DRIFT: {drift}")
        return drift
