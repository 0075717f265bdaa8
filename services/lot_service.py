"""
Lot Service
Batch purchases: created -> wallet assigned -> results recorded.

A result recorded without a reward leaves total_reward and profit empty. Each
result is an independent row; a later result never patches an earlier one.
"""

import logging
from typing import Optional, Tuple

from models import Lot, LotResult
from services.audit_log import AuditLogService
from services.ledger_store import LedgerStore
from services.wallet_service import WalletService
from utils.datetime_helpers import LedgerClock, format_timestamp, parse_timestamp
from utils.entity_locks import KeyedLocks
from utils.exception_handler import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class LotService:

    def __init__(
        self,
        store: LedgerStore,
        wallets: WalletService,
        audit: AuditLogService,
        clock: LedgerClock,
        locks: KeyedLocks,
    ):
        self.store = store
        self.wallets = wallets
        self.audit = audit
        self.clock = clock
        self.locks = locks

    async def create_lot(self, chat_id, qty: int, total_cost: int) -> Lot:
        now = self.clock()
        ts = format_timestamp(now)
        lot = await self.store.append(
            Lot,
            timestamp=ts,
            lot_id=f"LOT_{int(now.timestamp() * 1000)}",
            qty=qty,
            total_cost=total_cost,
            date=ts,
            wallet=None,
            chat_id=str(chat_id),
        )
        await self.audit.record("ADD_LOT", {
            "chatId": str(chat_id),
            "qty": qty,
            "totalCost": total_cost,
            "date": ts,
        })
        logger.info(f"✅ LOT: {lot.lot_id} {qty} phones for {total_cost} (row #{lot.id})")
        return lot

    async def latest_lot(self) -> Lot:
        """Most recent lot by purchase date, later row on ties"""
        rows = await self.store.fetch_all(Lot)
        if not rows:
            raise NotFoundError("Chưa có lô nào trong LOTS")

        def purchased_at(row: Lot):
            dt = parse_timestamp(row.date or row.timestamp, self.clock.tz)
            return (dt.timestamp() if dt else float("-inf"), row.id)

        return max(rows, key=purchased_at)

    async def assign_wallet(self, lot_row_id: int, wallet: str, total_cost: int) -> Tuple[Lot, int]:
        """Record the funding wallet and debit it. Returns (lot, new balance)"""
        wallet = self.wallets.require_wallet(wallet)
        async with self.locks.hold(f"lot:{lot_row_id}"):
            lot = await self.store.get(Lot, lot_row_id)
            if lot is None:
                raise NotFoundError("Không tìm thấy LOT để set wallet")
            lot.wallet = wallet
            await self.store.save(lot)
            balance = await self.wallets.adjust(wallet, -total_cost, f"LOT:{lot.lot_id}", "buy lot")
        logger.info(f"✅ LOT_WALLET: {lot.lot_id} funded by {wallet}")
        return lot, balance

    async def record_result(self, ok: int, tach: int, game: str, total_reward: Optional[int]) -> LotResult:
        """Append a result for the latest lot; profit only when the reward is known"""
        if ok < 0 or tach < 0:
            raise ValidationError("Sai cú pháp. Ví dụ: 5may hh800k tach1")

        lot = await self.latest_lot()
        async with self.locks.hold(f"lot:{lot.id}"):
            lot_cost = int(lot.total_cost or 0)
            profit = total_reward - lot_cost if total_reward is not None else None

            result = await self.store.append(
                LotResult,
                timestamp=format_timestamp(self.clock()),
                lot_id=lot.lot_id or "",
                lot_row=lot.id,
                qty=lot.qty,
                total_cost=lot_cost,
                ok=ok,
                tach=tach,
                game=game,
                total_reward=total_reward,
                profit=profit,
            )
            await self.audit.record("ADD_LOT_RESULT", {
                "lotRow": lot.id,
                "ok": ok,
                "tach": tach,
                "game": game,
                "totalReward": total_reward,
                "profit": profit,
            })

        logger.info(f"✅ LOT_RESULT: {lot.lot_id} ok={ok} tach={tach} {game} reward={total_reward} profit={profit}")
        return result
