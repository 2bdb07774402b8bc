"""Plain records exchanged between the scheduler core and its collaborators."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class ProductRecord:
    """A user's product as the scheduler sees it."""
    id: str
    name: str
    expiry_date: Any = None


@dataclass
class UserRecord:
    """A user's identity and notification state."""
    id: str
    device_token: Optional[str] = None
    last_weekly_digest_at: Optional[datetime] = None
    notification_history: Dict[str, datetime] = field(default_factory=dict)


@dataclass
class HistoryUpdate:
    """Changes recorded for one user during a pass, written in one commit."""
    sent_markers: Dict[str, datetime] = field(default_factory=dict)
    last_weekly_digest_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return not self.sent_markers and self.last_weekly_digest_at is None


@dataclass
class Reminder:
    """One push message the policy decided to send."""
    title: str
    body: str
    data: Dict[str, str]
    history_key: Optional[str] = None

    @property
    def is_digest(self) -> bool:
        return self.history_key is None


@dataclass
class DeliveryResult:
    """Outcome of a single send() call."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class UserRunResult:
    """What one user's run did."""
    user_id: str
    skipped: bool = False
    sent: List[Reminder] = field(default_factory=list)
    failed: List[Reminder] = field(default_factory=list)


@dataclass
class PassReport:
    """Summary of one scheduler pass over all users."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    users_checked: int = 0
    users_skipped: int = 0
    users_failed: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0

    def add(self, result: UserRunResult) -> None:
        if result.skipped:
            self.users_skipped += 1
        else:
            self.users_checked += 1
        self.notifications_sent += len(result.sent)
        self.notifications_failed += len(result.failed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "users_checked": self.users_checked,
            "users_skipped": self.users_skipped,
            "users_failed": self.users_failed,
            "notifications_sent": self.notifications_sent,
            "notifications_failed": self.notifications_failed,
        }
