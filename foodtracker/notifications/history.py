"""
Per-user record of which reminders already fired.

A pass loads each user's history once, reads and marks against the
in-memory copy, and commits the changed keys in a single write.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional

from foodtracker.notifications.records import HistoryUpdate, UserRecord

logger = logging.getLogger(__name__)


@dataclass
class _Snapshot:
    history: Dict[str, datetime]
    last_digest_at: Optional[datetime]
    changes: HistoryUpdate = field(default_factory=HistoryUpdate)


class NotificationHistoryStore:
    """
    In-memory history view over the persisted user records.

    Args:
        store: Collaborator with ``commit_history(user_id, HistoryUpdate)``
    """

    def __init__(self, store):
        self.store = store
        self._snapshots: Dict[str, _Snapshot] = {}

    def load(self, user: UserRecord) -> None:
        """Take a working copy of the user's history for this pass."""
        self._snapshots[user.id] = _Snapshot(
            history=dict(user.notification_history or {}),
            last_digest_at=user.last_weekly_digest_at,
        )

    def _snapshot(self, user_id: str) -> _Snapshot:
        try:
            return self._snapshots[user_id]
        except KeyError:
            raise KeyError(f"History for user {user_id} was not loaded") from None

    def has_sent(self, user_id: str, key: str) -> bool:
        return key in self._snapshot(user_id).history

    def last_sent(self, user_id: str, key: str) -> Optional[datetime]:
        return self._snapshot(user_id).history.get(key)

    def mark_sent(self, user_id: str, key: str, timestamp: datetime) -> None:
        snapshot = self._snapshot(user_id)
        snapshot.history[key] = timestamp
        snapshot.changes.sent_markers[key] = timestamp

    def last_digest_at(self, user_id: str) -> Optional[datetime]:
        return self._snapshot(user_id).last_digest_at

    def was_digest_sent_within(self, user_id: str, days: int, now: datetime) -> bool:
        """True if a digest went out less than ``days`` days before ``now``."""
        last = self.last_digest_at(user_id)
        if last is None:
            return False
        return now - last < timedelta(days=days)

    def mark_digest_sent(self, user_id: str, timestamp: datetime) -> None:
        snapshot = self._snapshot(user_id)
        snapshot.last_digest_at = timestamp
        snapshot.changes.last_weekly_digest_at = timestamp

    async def commit(self, user_id: str) -> bool:
        """
        Write the user's changes back and drop the working copy.

        Returns:
            bool: True if anything was written
        """
        snapshot = self._snapshots.pop(user_id, None)
        if snapshot is None or snapshot.changes.is_empty:
            return False

        await self.store.commit_history(user_id, snapshot.changes)
        return True

    def discard(self, user_id: str) -> None:
        """Drop the working copy without writing."""
        self._snapshots.pop(user_id, None)
