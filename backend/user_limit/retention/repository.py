"""User repository for eviction queries"""

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select, delete, func
from sqlalchemy.orm import Session

from ..models.user import User


class UserRepository:
    """Repository for the reads and the bulk delete an eviction run needs.

    Operates inside the caller's session; the caller owns commit/rollback.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def count(self) -> int:
        """Total number of users."""
        return self.db.execute(select(func.count()).select_from(User)).scalar_one()

    def list_oldest_ids(self, limit: int) -> list[int]:
        """Ids of the ``limit`` users with the earliest registration time.

        Ordered by registration time ascending. Users sharing a timestamp
        come back in whatever order the database returns them.

        Args:
            limit: Number of ids to return; anything below 1 returns []

        Returns:
            List of user ids, oldest first
        """
        if limit < 1:
            return []

        query = (
            select(User.id)
            .order_by(User.registered_at.asc())
            .limit(limit)
        )
        return list(self.db.execute(query).scalars().all())

    def delete_all_except(self, ids_to_keep: Sequence[int]) -> int:
        """Delete every user whose id is not in ``ids_to_keep``.

        Issued as a single parameterized DELETE statement. An empty keep set
        deletes nothing.

        Args:
            ids_to_keep: User ids that must survive

        Returns:
            Number of deleted rows
        """
        keep = sorted(set(ids_to_keep))
        if not keep:
            return 0

        stmt = (
            delete(User)
            .where(User.id.notin_(keep))
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        return result.rowcount or 0

    def earliest_registered_outside(self, ids_to_keep: Sequence[int]) -> Optional[datetime]:
        """Earliest registration time among users not in ``ids_to_keep``."""
        keep = list(set(ids_to_keep))
        query = select(func.min(User.registered_at))
        if keep:
            query = query.where(User.id.notin_(keep))
        return self.db.execute(query).scalar_one_or_none()
