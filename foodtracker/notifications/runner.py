"""Runs the reminder policy for a single user and sends what is due."""

import logging
from typing import List

from foodtracker.notifications.history import NotificationHistoryStore
from foodtracker.notifications.policy import ReminderPolicy
from foodtracker.notifications.records import (
    DeliveryResult,
    ProductRecord,
    Reminder,
    UserRecord,
    UserRunResult,
)

logger = logging.getLogger(__name__)


class UserNotificationRunner:
    """
    One user's part of a scheduler pass.

    Order within a run: weekly digest first, then each product in list
    order. Every send is independent: a failure is logged and leaves its
    history marker unset so the next pass tries again.
    """

    def __init__(
        self,
        policy: ReminderPolicy,
        history: NotificationHistoryStore,
        delivery,
        clock,
    ):
        self.policy = policy
        self.history = history
        self.delivery = delivery
        self.clock = clock

    async def run(self, user: UserRecord, products: List[ProductRecord]) -> UserRunResult:
        """
        Evaluate and send reminders for one user, then save history once.

        Args:
            user: User record with device token and history
            products: The user's products

        Returns:
            UserRunResult with sent and failed reminders
        """
        result = UserRunResult(user_id=user.id)

        if not user.device_token:
            logger.info(f"  User {user.id} has no device token, skipping")
            result.skipped = True
            return result

        self.history.load(user)
        today = self.clock.today()

        if self.policy.is_digest_due(user.id, self.history, self.clock.now()):
            digest = self.policy.build_digest(products, today)
            if digest is not None and await self._deliver(user, digest, result):
                self.history.mark_digest_sent(user.id, self.clock.now())
                logger.info(f"  Sent weekly reminder to user {user.id}")

        for product in products:
            reminder = self.policy.evaluate_product(product, today, self.history, user.id)
            if reminder is None:
                continue

            if await self._deliver(user, reminder, result):
                self.history.mark_sent(user.id, reminder.history_key, self.clock.now())
                logger.info(f"  Sent {reminder.data['daysLeft']}-day warning for: {product.name}")

        await self.history.commit(user.id)
        return result

    async def _deliver(self, user: UserRecord, reminder: Reminder, result: UserRunResult) -> bool:
        try:
            outcome: DeliveryResult = await self.delivery.send(
                user.device_token, reminder.title, reminder.body, reminder.data
            )
        except Exception as e:
            logger.error(f"  Delivery raised for user {user.id} ({reminder.data['type']}): {e}")
            outcome = DeliveryResult(success=False, error=str(e))

        if outcome.success:
            result.sent.append(reminder)
            return True

        logger.warning(
            f"  Failed to send {reminder.data['type']} to user {user.id}: {outcome.error}"
        )
        result.failed.append(reminder)
        return False
