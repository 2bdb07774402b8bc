"""
Reminder policy: which expiry reminders are due right now.

Pure decision logic. Given today's date, a product and the user's history
view, decide whether a threshold or daily-countdown reminder should go out,
and separately whether the user's weekly digest is due.

Rules:
- 10-day warning: fires once, on the day the product is exactly 10 days out
- Daily countdown: one reminder per day while 0 <= days left <= 5
- Weekly digest: first run, then whenever 7+ days have passed since the last one
"""

from datetime import date, datetime
from typing import Iterable, Optional

from foodtracker.notifications.expiry import days_until_expiry
from foodtracker.notifications.history import NotificationHistoryStore
from foodtracker.notifications.records import ProductRecord, Reminder
from foodtracker.shared.models import NotificationType

TEN_DAY_THRESHOLD = 10
DAILY_WINDOW_DAYS = 5
DIGEST_WINDOW_DAYS = 7
DIGEST_INTERVAL_DAYS = 7


def ten_day_key(product_id: str) -> str:
    return f"{product_id}_10day"


def daily_key(product_id: str, days_left: int) -> str:
    return f"{product_id}_{days_left}day"


class ReminderPolicy:
    """
    Decides reminders for one user's products.

    Args:
        send_empty_digest: Send the weekly digest even when nothing is
            expiring soon (the digest still consumes the weekly cadence)
        catch_up_ten_day: Fire a missed 10-day warning on any later day
            while the product is still more than 5 days out
    """

    def __init__(self, send_empty_digest: bool = True, catch_up_ten_day: bool = False):
        self.send_empty_digest = send_empty_digest
        self.catch_up_ten_day = catch_up_ten_day

    # ------------------------------------------------------------------
    # Per-product reminders
    # ------------------------------------------------------------------

    def evaluate_product(
        self,
        product: ProductRecord,
        today: date,
        history: NotificationHistoryStore,
        user_id: str,
    ) -> Optional[Reminder]:
        """
        Return the reminder due for ``product`` today, if any.

        At most one reminder per product per run: the 10-day and 0-5 day
        windows never overlap.
        """
        days_left = days_until_expiry(product.expiry_date, today)
        if days_left is None:
            return None

        if self._in_ten_day_window(days_left):
            key = ten_day_key(product.id)
            if not history.has_sent(user_id, key):
                return self.ten_day_reminder(product, days_left, key)
            return None

        if 0 <= days_left <= DAILY_WINDOW_DAYS:
            key = daily_key(product.id, days_left)
            last_sent = history.last_sent(user_id, key)
            if last_sent is None or last_sent.date() < today:
                return self.daily_reminder(product, days_left, key)

        return None

    def _in_ten_day_window(self, days_left: int) -> bool:
        if self.catch_up_ten_day:
            return DAILY_WINDOW_DAYS < days_left <= TEN_DAY_THRESHOLD
        return days_left == TEN_DAY_THRESHOLD

    @staticmethod
    def ten_day_reminder(product: ProductRecord, days_left: int, key: str) -> Reminder:
        return Reminder(
            title="Expiry Warning",
            body=f"{product.name} expires in {days_left} days",
            data={
                "type": NotificationType.EXPIRY_WARNING.value,
                "productId": str(product.id),
                "daysLeft": str(days_left),
            },
            history_key=key,
        )

    @staticmethod
    def daily_reminder(product: ProductRecord, days_left: int, key: str) -> Reminder:
        if days_left == 0:
            title, body = "Expires Today!", f"{product.name} expires TODAY!"
        elif days_left == 1:
            title, body = "Expires Tomorrow", f"{product.name} expires tomorrow!"
        else:
            title, body = "Expiring Soon", f"{product.name} expires in {days_left} days"

        return Reminder(
            title=title,
            body=body,
            data={
                "type": NotificationType.DAILY_EXPIRY.value,
                "productId": str(product.id),
                "daysLeft": str(days_left),
            },
            history_key=key,
        )

    # ------------------------------------------------------------------
    # Weekly digest
    # ------------------------------------------------------------------

    def is_digest_due(self, user_id: str, history: NotificationHistoryStore, now: datetime) -> bool:
        """Due on the first run and once 7 full days have elapsed (inclusive)."""
        return not history.was_digest_sent_within(user_id, DIGEST_INTERVAL_DAYS, now)

    @staticmethod
    def count_expiring_soon(products: Iterable[ProductRecord], today: date) -> int:
        count = 0
        for product in products:
            days_left = days_until_expiry(product.expiry_date, today)
            if days_left is not None and 0 <= days_left <= DIGEST_WINDOW_DAYS:
                count += 1
        return count

    def build_digest(self, products: Iterable[ProductRecord], today: date) -> Optional[Reminder]:
        """
        Build the weekly digest.

        Returns None only when empty digests are suppressed and nothing is
        expiring within the week.
        """
        products = list(products)
        expiring = self.count_expiring_soon(products, today)

        if expiring == 0 and not self.send_empty_digest:
            return None

        if expiring == 0:
            body = "Nothing expires this week. Check your food items!"
        elif expiring == 1:
            body = "1 item expires this week. Check your food items!"
        else:
            body = f"{expiring} items expire this week. Check your food items!"

        return Reminder(
            title="Weekly Reminder",
            body=body,
            data={
                "type": NotificationType.WEEKLY_SUMMARY.value,
                "expiringCount": str(expiring),
                "totalItems": str(len(products)),
            },
        )
