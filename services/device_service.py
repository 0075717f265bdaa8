"""
Device Service
Single phone lifecycle: bought -> wallet assigned -> resolved (ok).

The funding wallet is debited when it becomes known, not at purchase time.
Phone codes are not unique; every lookup resolves to the most recent purchase.
"""

import logging
from dataclasses import dataclass

from models import Device, DeviceProfitRecord, DeviceStatus
from services.audit_log import AuditLogService
from services.ledger_store import LedgerStore
from services.wallet_service import WalletService
from utils.datetime_helpers import LedgerClock, format_timestamp, parse_timestamp
from utils.entity_locks import KeyedLocks
from utils.exception_handler import NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class DeviceResolution:
    device: Device
    buy_price: int
    game_amount: int
    profit: int


class DeviceService:

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

    @staticmethod
    def _key(phone_code: str) -> str:
        return f"device:{phone_code.lower()}"

    async def find_latest(self, phone_code: str) -> Device:
        rows = await self.store.fetch_all(Device)
        code = phone_code.lower()
        matches = [r for r in rows if str(r.phone_code or "").lower() == code]
        if not matches:
            raise NotFoundError(f"Không tìm thấy máy {phone_code}")

        def bought_at(row: Device):
            dt = parse_timestamp(row.buy_date or row.timestamp, self.clock.tz)
            return (dt.timestamp() if dt else float("-inf"), row.id)

        return max(matches, key=bought_at)

    async def create_device(self, chat_id, phone_code: str, buy_price: int) -> Device:
        ts = format_timestamp(self.clock())
        async with self.locks.hold(self._key(phone_code)):
            device = await self.store.append(
                Device,
                timestamp=ts,
                phone_code=phone_code,
                buy_price=buy_price,
                buy_date=ts,
                status=DeviceStatus.BOUGHT.value,
                wallet=None,
                chat_id=str(chat_id),
            )
            await self.audit.record("ADD_PHONE", {
                "chatId": str(chat_id),
                "phoneCode": phone_code,
                "buyPrice": buy_price,
                "buyDate": ts,
            })
        logger.info(f"✅ PHONE: bought {phone_code} for {buy_price} (row #{device.id})")
        return device

    async def assign_wallet(self, phone_code: str, wallet: str, buy_price: int) -> int:
        """Record the funding wallet and debit it. Returns the wallet's new balance"""
        wallet = self.wallets.require_wallet(wallet)
        async with self.locks.hold(self._key(phone_code)):
            device = await self.find_latest(phone_code)
            device.wallet = wallet
            await self.store.save(device)
            balance = await self.wallets.adjust(wallet, -buy_price, f"PHONE:{phone_code}", "buy phone")
        logger.info(f"✅ PHONE_WALLET: {phone_code} funded by {wallet}")
        return balance

    async def resolve_device(self, phone_code: str, game_source: str, game_amount: int) -> DeviceResolution:
        """Mark the phone ok; profit = game amount - purchase price (negative is a loss)"""
        async with self.locks.hold(self._key(phone_code)):
            device = await self.find_latest(phone_code)
            buy_price = int(device.buy_price or 0)
            profit = game_amount - buy_price

            device.status = DeviceStatus.OK.value
            device.game_source = game_source
            device.game_amount = game_amount
            device.profit = profit
            device.ok_at = format_timestamp(self.clock())
            await self.store.save(device)

            await self.store.append(
                DeviceProfitRecord,
                timestamp=format_timestamp(self.clock()),
                phone_code=phone_code,
                buy_price=buy_price,
                game_source=game_source,
                game_amount=game_amount,
                profit=profit,
            )
            await self.audit.record("PHONE_OK_PROFIT", {
                "phoneCode": phone_code,
                "buyPrice": buy_price,
                "gameSource": game_source,
                "gameAmount": game_amount,
                "profit": profit,
            })

        logger.info(f"✅ PHONE_OK: {phone_code} {game_source} {game_amount} profit {profit}")
        return DeviceResolution(device=device, buy_price=buy_price, game_amount=game_amount, profit=profit)
