"""
Wallet balance and movement log tests
The stored balance must always equal the replayed wallet_log for that wallet
"""

import asyncio

import pytest

from models import RevenueKind, WalletAccount, WalletLedgerEntry
from services.ledger_services import build_ledger_services
from services.wallet_service import WALLET_REPROMPT, normalize_wallet
from database import create_session_factory
from utils.exception_handler import MissingTableError, ValidationError


class TestNormalizeWallet:

    def test_known_wallets(self):
        assert normalize_wallet("Hana") == "hana"
        assert normalize_wallet(" URI ") == "uri"
        assert normalize_wallet("kt") == "kt"

    def test_unknown_wallets(self):
        assert normalize_wallet("vcb") is None
        assert normalize_wallet("") is None
        assert normalize_wallet(None) is None


class TestWalletMovements:

    @pytest.mark.asyncio
    async def test_credit_debit_then_admin_set(self, services):
        wallets = services.wallets
        assert await wallets.adjust("hana", 100000, "TEST", "top up") == 100000
        assert await wallets.adjust("hana", -35000, "PHONE:ssa34", "buy phone") == 65000

        balance, delta = await wallets.set_balance("hana", 200000)
        assert (balance, delta) == (200000, 135000)

        entries = await services.store.fetch_all(WalletLedgerEntry)
        assert [e.type for e in entries] == ["credit", "debit", "admin_set"]
        assert [e.amount for e in entries] == [100000, -35000, 135000]
        assert entries[-1].ref == "ADMIN_SET"
        assert sum(e.amount for e in entries) == 200000

        assert await wallets.balances() == {"hana": 200000}
        assert await wallets.replayed_balances() == {"hana": 200000}
        assert await wallets.drifted_wallets() == {}

    @pytest.mark.asyncio
    async def test_unknown_wallet_is_rejected(self, services):
        with pytest.raises(ValidationError) as exc_info:
            await services.wallets.adjust("vcb", 1000)
        assert exc_info.value.message == WALLET_REPROMPT
        assert await services.store.fetch_all(WalletLedgerEntry) == []

    @pytest.mark.asyncio
    async def test_drift_is_detected(self, services):
        await services.wallets.adjust("uri", 50000)
        rows = await services.store.fetch_all(WalletAccount)
        rows[0].balance = 1
        await services.store.save(rows[0])

        assert await services.wallets.drifted_wallets() == {"uri": (1, 50000)}

    @pytest.mark.asyncio
    async def test_concurrent_adjustments_are_serialized(self, services):
        await asyncio.gather(*(services.wallets.adjust("kt", 1000) for _ in range(10)))

        assert await services.wallets.balances() == {"kt": 10000}
        assert len(await services.store.fetch_all(WalletLedgerEntry)) == 10


class TestMissingTables:

    @pytest.mark.asyncio
    async def test_operation_on_missing_table_fails_at_call_time(self, engine, services, clock):
        partial = build_ledger_services(create_session_factory(engine), {"undo_log", "game_revenue"}, clock)

        # tables that exist keep working
        await partial.revenue.post("1", "db", 100000, RevenueKind.INVITE_REWARD)

        with pytest.raises(MissingTableError) as exc_info:
            await partial.devices.create_device("1", "ssa34", 35000)
        assert exc_info.value.table == "phones"
        assert str(exc_info.value) == "Missing table phones"
