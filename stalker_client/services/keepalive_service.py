import logging
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from stalker_client.config import settings
from stalker_client.services.session_service import SessionManager


logger = logging.getLogger(__name__)

KEEPALIVE_JOB_ID = "portal_watchdog"


class KeepaliveService:
    """Periodic watchdog ping keeping the portal session alive"""

    def __init__(self, session_manager: SessionManager, interval_seconds: int | None = None):
        self._session = session_manager
        self.interval_seconds = interval_seconds or settings.portal_keepalive_interval_sec
        self.scheduler: AsyncIOScheduler | None = None

    async def ping(self) -> None:
        """Fire-and-forget watchdog request; never raises"""
        if not self._session.is_authenticated:
            logger.debug("Watchdog skipped: no authenticated session")
            return
        try:
            await self._session.request("watchdog", "watchdog")
            logger.debug("Watchdog sent")
        except Exception as e:
            logger.warning(f"Watchdog error: {e}")

    def start(self) -> None:
        """Start the scheduler with the watchdog job"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Keepalive already running")
            return

        self.scheduler = AsyncIOScheduler(timezone='UTC')
        self.scheduler.add_job(
            self.ping,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=KEEPALIVE_JOB_ID,
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Keepalive started (every %ss). Next ping: %s",
            self.interval_seconds,
            next_time.isoformat() if next_time else "unknown"
        )

    def shutdown(self) -> None:
        """Shutdown the scheduler"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Keepalive stopped")
        self.scheduler = None

    @property
    def running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled ping time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(KEEPALIVE_JOB_ID)
        return job.next_run_time if job else None
