"""
Document store access for the notification scheduler.

Backed by the async SQLAlchemy models in ``foodtracker.shared.models``.
Reads return plain records; the only writes are notification-history
upserts, the weekly digest timestamp, and device-token registration.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List

from sqlalchemy import select, update, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from foodtracker.notifications.exceptions import StoreError
from foodtracker.notifications.records import HistoryUpdate, ProductRecord, UserRecord
from foodtracker.shared.database import get_session_context
from foodtracker.shared.models import NotificationHistoryEntry, Product, User

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SqlAlchemyNotificationStore:
    """
    User directory, product directory and history store in one.

    Every public method opens its own transaction, so a failure for one user
    never leaves another user's writes half-applied.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def list_users(self) -> List[UserRecord]:
        """
        Load every user with their notification history.

        Raises:
            StoreError: If the store cannot be read
        """
        try:
            async with get_session_context(self.session_factory) as session:
                users = (await session.execute(select(User).order_by(User.id))).scalars().all()
                entries = (await session.execute(select(NotificationHistoryEntry))).scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list users: {e}") from e

        history: Dict[str, Dict[str, datetime]] = defaultdict(dict)
        for entry in entries:
            history[entry.user_id][entry.reminder_key] = entry.sent_at

        return [
            UserRecord(
                id=user.id,
                device_token=user.device_token,
                last_weekly_digest_at=user.last_weekly_digest_at,
                notification_history=dict(history.get(user.id, {})),
            )
            for user in users
        ]

    async def list_products_for(self, user_id: str) -> List[ProductRecord]:
        """
        Load one user's products.

        Raises:
            StoreError: If the store cannot be read
        """
        try:
            async with get_session_context(self.session_factory) as session:
                result = await session.execute(
                    select(Product)
                    .where(Product.user_id == user_id)
                    .order_by(Product.created_at, Product.id)
                )
                products = result.scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list products for user {user_id}: {e}") from e

        return [
            ProductRecord(id=product.id, name=product.name, expiry_date=product.expiry_date)
            for product in products
        ]

    async def commit_history(self, user_id: str, changes: HistoryUpdate) -> None:
        """
        Persist one user's history changes in a single transaction.

        Each marker is upserted on its own key and only ever moves forward in
        time, as does ``last_weekly_digest_at``.

        Raises:
            StoreError: If the write fails
        """
        if changes.is_empty:
            return

        try:
            async with get_session_context(self.session_factory) as session:
                if changes.sent_markers:
                    await session.execute(self._upsert_markers(session, user_id, changes.sent_markers))

                if changes.last_weekly_digest_at is not None:
                    await session.execute(
                        update(User)
                        .where(
                            User.id == user_id,
                            or_(
                                User.last_weekly_digest_at.is_(None),
                                User.last_weekly_digest_at < changes.last_weekly_digest_at,
                            ),
                        )
                        .values(last_weekly_digest_at=changes.last_weekly_digest_at)
                    )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to save notification history for user {user_id}: {e}") from e

        logger.debug(
            f"Saved {len(changes.sent_markers)} history marker(s) for user {user_id}"
        )

    async def register_device_token(self, user_id: str, device_token: str) -> bool:
        """
        Store the push token for a user.

        Returns:
            bool: False if the user does not exist
        """
        try:
            async with get_session_context(self.session_factory) as session:
                result = await session.execute(
                    update(User)
                    .where(User.id == user_id)
                    .values(device_token=device_token)
                )
                updated = result.rowcount
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to save device token for user {user_id}: {e}") from e

        return updated > 0

    @staticmethod
    def _upsert_markers(session: AsyncSession, user_id: str, markers: Dict[str, datetime]):
        dialect = session.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise StoreError(f"Unsupported database dialect for history upserts: {dialect}")

        stmt = insert(NotificationHistoryEntry).values([
            {"user_id": user_id, "reminder_key": key, "sent_at": sent_at}
            for key, sent_at in markers.items()
        ])
        return stmt.on_conflict_do_update(
            index_elements=[NotificationHistoryEntry.user_id, NotificationHistoryEntry.reminder_key],
            set_={"sent_at": stmt.excluded.sent_at},
            where=NotificationHistoryEntry.sent_at < stmt.excluded.sent_at,
        )
