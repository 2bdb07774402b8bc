"""Error types raised by the notification scheduler and its collaborators."""


class NotificationError(Exception):
    """Base class for notification subsystem errors."""


class CollaboratorUnavailableError(NotificationError):
    """The store or the push delivery backend is not configured."""


class StoreError(NotificationError):
    """A read or write against the document store failed."""
