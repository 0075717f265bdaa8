"""
Ledger Background Job Scheduler

Runs the due-date sweep twice over:
- Daily at SWEEP_DAILY_HOUR:00 local time
- Hourly at minute SWEEP_HOURLY_MINUTE

The per-day reminder throttle in the sweep makes the extra hourly runs harmless.
"""

import logging
from datetime import tzinfo

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from config import Config
from jobs.due_date_sweep import run_due_date_sweep
from services.ledger_services import LedgerServices
from utils.conversation_state import ConversationStateStore

logger = logging.getLogger(__name__)


class LedgerScheduler:

    def __init__(self, application, services: LedgerServices, states: ConversationStateStore, timezone: tzinfo):
        self.application = application
        self.services = services
        self.states = states
        self.timezone = timezone

        job_defaults = {
            'coalesce': True,  # Prevent job pileup
            'max_instances': 1,
            'misfire_grace_time': 300
        }
        self.scheduler = AsyncIOScheduler(
            jobstores={'default': MemoryJobStore()},
            executors={'default': AsyncIOExecutor()},
            job_defaults=job_defaults,
            timezone=timezone
        )

    async def _send(self, chat_id: str, text: str) -> None:
        await self.application.bot.send_message(chat_id=chat_id, text=text)

    async def run_sweep(self):
        return await run_due_date_sweep(self.services, self.states, self._send)

    def setup_jobs(self):
        self.scheduler.add_job(
            self.run_sweep,
            trigger=CronTrigger(hour=Config.SWEEP_DAILY_HOUR, minute=0, timezone=self.timezone),
            id="due_sweep_daily",
            name="⏰ Invite Due Sweep - Daily",
            replace_existing=True
        )
        self.scheduler.add_job(
            self.run_sweep,
            trigger=CronTrigger(minute=Config.SWEEP_HOURLY_MINUTE, timezone=self.timezone),
            id="due_sweep_hourly",
            name="⏰ Invite Due Sweep - Hourly",
            replace_existing=True
        )
        logger.info(
            f"✅ Due sweep scheduled daily at {Config.SWEEP_DAILY_HOUR:02d}:00 "
            f"and hourly at :{Config.SWEEP_HOURLY_MINUTE:02d} ({self.timezone})"
        )

    def start(self):
        self.setup_jobs()
        self.scheduler.start()
        for job in self.scheduler.get_jobs():
            logger.info(f"📋 Active job: {job.name} ({job.id})")

    def stop(self):
        """Stop the scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("🛑 Ledger scheduler stopped")
