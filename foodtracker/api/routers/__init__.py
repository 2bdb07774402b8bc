"""Router package initialization."""

from foodtracker.api.routers import (
    notifications,
    users,
)

__all__ = [
    "notifications",
    "users",
]
