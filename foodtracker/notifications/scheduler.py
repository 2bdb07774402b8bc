"""
Notification Scheduler

Drives the expiry reminder check across all users:
- start(): runs one pass right away, then every N hours
- stop(): removes the interval job (a pass already running is left to finish)
- trigger_now(): runs one pass on demand without touching the timer

Passes never overlap. A trigger that arrives while a pass is running waits
for it to finish, then runs its own. Timer ticks that land while the
previous timer pass is still running are coalesced into one.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional, Set

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from foodtracker.notifications.exceptions import CollaboratorUnavailableError, StoreError
from foodtracker.notifications.expiry import SystemClock
from foodtracker.notifications.history import NotificationHistoryStore
from foodtracker.notifications.policy import ReminderPolicy
from foodtracker.notifications.records import PassReport, UserRunResult
from foodtracker.notifications.runner import UserNotificationRunner

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_HOURS = 6
CHECK_JOB_ID = "expiry-notification-check"


class NotificationScheduler:
    """
    Periodic expiry-reminder job.

    Args:
        store: User/product directory and history store, or None if not configured
        delivery: Push delivery backend, or None if not configured
        clock: Time source for reminder decisions (defaults to the system clock)
        policy: Reminder policy (defaults to observed behavior)
    """

    def __init__(
        self,
        store=None,
        delivery=None,
        clock=None,
        policy: Optional[ReminderPolicy] = None,
    ):
        self.store = store
        self.delivery = delivery
        self.clock = clock or SystemClock()
        self.policy = policy or ReminderPolicy()

        self.interval_hours: Optional[float] = None
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._job: Optional[Job] = None
        self._passes: Set[asyncio.Task] = set()
        self._pass_lock = asyncio.Lock()

    # ========================================================================
    # Lifecycle
    # ========================================================================

    @property
    def is_running(self) -> bool:
        return self._job is not None

    def start(self, interval_hours: float = DEFAULT_INTERVAL_HOURS) -> None:
        """
        Start the scheduler. Must be called from a running event loop.

        Runs one pass immediately, then every ``interval_hours``. Does
        nothing if already running.
        """
        if self.is_running:
            logger.warning("⚠️ Scheduler already running")
            return

        if interval_hours <= 0:
            raise ValueError("interval_hours must be positive")

        logger.info(f"🕐 Starting notification scheduler (checks every {interval_hours:g} hours)")

        if self._scheduler is None or not self._scheduler.running:
            self._scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
            self._scheduler.start()

        # Job timing runs on wall-clock time; the injected clock only drives reminder dates
        self._job = self._scheduler.add_job(
            self._run_check,
            "interval",
            hours=interval_hours,
            id=CHECK_JOB_ID,
            next_run_time=datetime.now(),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.interval_hours = interval_hours
        logger.info("✅ Notification scheduler started")

    def stop(self) -> None:
        """Remove the interval job. In-flight passes run to completion."""
        if self._job is None:
            return

        self._job.remove()
        self._job = None
        self.interval_hours = None
        if not self._passes:
            self._shutdown_scheduler()
        logger.info("🛑 Notification scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait for all in-flight timer passes to finish."""
        while self._passes:
            await asyncio.gather(*list(self._passes), return_exceptions=True)
        if not self.is_running:
            self._shutdown_scheduler()

    def _shutdown_scheduler(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            # Only called with no pass in flight, so nothing is cancelled
            self._scheduler.shutdown(wait=False)
        self._scheduler = None

    def get_status(self) -> dict:
        if self.is_running:
            description = f"Every {self.interval_hours:g} hours"
        else:
            description = "Not scheduled"
        return {
            "is_running": self.is_running,
            "cadence_description": description,
        }

    async def _run_check(self) -> None:
        task = asyncio.current_task()
        self._passes.add(task)
        try:
            await self.trigger_now()
        except Exception as e:
            logger.error(f"❌ Error in scheduler check: {e}", exc_info=True)
        finally:
            self._passes.discard(task)

    # ========================================================================
    # Passes
    # ========================================================================

    async def trigger_now(self) -> PassReport:
        """
        Run one full pass over all users.

        Returns:
            PassReport for the pass

        Raises:
            CollaboratorUnavailableError: If the store or delivery is not configured
            StoreError: If users cannot be listed
        """
        async with self._pass_lock:
            return await self._run_pass()

    async def _run_pass(self) -> PassReport:
        if self.store is None:
            raise CollaboratorUnavailableError("Document store is not configured")
        if self.delivery is None:
            raise CollaboratorUnavailableError("Push delivery is not configured")

        report = PassReport(started_at=self.clock.now())
        logger.info("=== NOTIFICATION CHECK START ===")
        logger.info(f"Time: {report.started_at.isoformat()}")

        users = await self.store.list_users()
        logger.info(f"Found {len(users)} user(s) to check")

        history = NotificationHistoryStore(self.store)
        runner = UserNotificationRunner(self.policy, history, self.delivery, self.clock)

        for user in users:
            if not user.device_token:
                logger.info(f"  User {user.id} has no device token")
                report.add(UserRunResult(user_id=user.id, skipped=True))
                continue

            try:
                products = await self.store.list_products_for(user.id)
            except StoreError as e:
                logger.error(f"  Skipping user {user.id}: {e}")
                report.users_failed += 1
                continue

            logger.info(f"  User {user.id}: {len(products)} product(s)")

            try:
                result = await runner.run(user, products)
            except StoreError as e:
                logger.error(f"  Failed to save history for user {user.id}: {e}")
                history.discard(user.id)
                report.users_failed += 1
                continue
            except Exception as e:
                logger.error(f"  Error checking user {user.id}: {e}", exc_info=True)
                history.discard(user.id)
                report.users_failed += 1
                continue

            report.add(result)

        report.finished_at = self.clock.now()
        logger.info(
            f"Notification check complete: {report.notifications_sent} sent, "
            f"{report.notifications_failed} failed, {report.users_failed} user(s) failed"
        )
        logger.info("=== NOTIFICATION CHECK END ===")
        return report
