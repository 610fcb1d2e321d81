"""Key-value option store backed by the options table."""

import logging
from typing import Optional

from sqlalchemy import select, delete

from ..database import SessionFactory, session_scope
from ..models.option import Option

logger = logging.getLogger(__name__)


class OptionStore:
    """Read and write named text options.

    Every call opens its own short transaction through the session factory,
    so a single store instance can be shared process-wide by the API, the
    scheduler thread and the CLI.
    """

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the stored value of ``name`` or ``default`` if unset."""
        with session_scope(self.session_factory) as session:
            value = session.execute(
                select(Option.option_value).where(Option.option_name == name)
            ).scalar_one_or_none()

        return default if value is None else value

    def exists(self, name: str) -> bool:
        with session_scope(self.session_factory) as session:
            found = session.execute(
                select(Option.option_id).where(Option.option_name == name)
            ).first()
        return found is not None

    def add(self, name: str, value: str) -> bool:
        """Insert ``name`` only if it is not stored yet.

        Returns:
            True if the option was inserted, False if it already existed
        """
        with session_scope(self.session_factory) as session:
            existing = session.execute(
                select(Option).where(Option.option_name == name)
            ).scalar_one_or_none()
            if existing is not None:
                return False

            session.add(Option(option_name=name, option_value=value))

        logger.debug(f"Added option {name}", extra={"option_name": name})
        return True

    def update(self, name: str, value: str) -> bool:
        """Insert or overwrite ``name``.

        Returns:
            True if the stored value changed, False if it was already equal
        """
        with session_scope(self.session_factory) as session:
            existing = session.execute(
                select(Option).where(Option.option_name == name)
            ).scalar_one_or_none()

            if existing is None:
                session.add(Option(option_name=name, option_value=value))
            elif existing.option_value == value:
                return False
            else:
                existing.option_value = value

        logger.debug(f"Updated option {name}", extra={"option_name": name})
        return True

    def delete(self, name: str) -> bool:
        """Remove ``name``. Returns whether a row was deleted."""
        with session_scope(self.session_factory) as session:
            result = session.execute(
                delete(Option).where(Option.option_name == name)
            )
            deleted = result.rowcount or 0

        if deleted:
            logger.debug(f"Deleted option {name}", extra={"option_name": name})
        return deleted > 0
