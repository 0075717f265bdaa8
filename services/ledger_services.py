"""
Ledger service container
Wires the domain services around one store, one clock and one lock registry.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.ext.asyncio import async_sessionmaker

from services.audit_log import AuditLogService
from services.device_service import DeviceService
from services.invite_service import InviteService
from services.ledger_store import LedgerStore
from services.lot_service import LotService
from services.report_service import ReportService
from services.revenue_service import RevenueService
from services.wallet_service import WalletService
from utils.datetime_helpers import LedgerClock
from utils.entity_locks import KeyedLocks

logger = logging.getLogger(__name__)


@dataclass
class LedgerServices:
    store: LedgerStore
    clock: LedgerClock
    locks: KeyedLocks
    audit: AuditLogService
    wallets: WalletService
    revenue: RevenueService
    invites: InviteService
    devices: DeviceService
    lots: LotService
    reports: ReportService


def build_ledger_services(
    session_factory: async_sessionmaker,
    available_tables: Iterable[str],
    clock: LedgerClock,
) -> LedgerServices:
    store = LedgerStore(session_factory, available_tables)
    locks = KeyedLocks()
    audit = AuditLogService(store, clock)
    wallets = WalletService(store, clock, locks)
    revenue = RevenueService(store, audit, clock)
    invites = InviteService(store, revenue, audit, clock, locks)
    devices = DeviceService(store, wallets, audit, clock, locks)
    lots = LotService(store, wallets, audit, clock, locks)
    reports = ReportService(store, invites, wallets, clock)
    logger.info("✅ Ledger services initialized")
    return LedgerServices(
        store=store, clock=clock, locks=locks, audit=audit, wallets=wallets, revenue=revenue,
        invites=invites, devices=devices, lots=lots, reports=reports,
    )
