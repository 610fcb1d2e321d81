"""User SQLAlchemy model"""

from sqlalchemy import Column, Integer, String, Index, TIMESTAMP
from sqlalchemy.sql import func

from .base import Base


class User(Base):
    """Row of the host application's users table.

    The retention job only reads ``id`` and ``registered_at`` and deletes
    rows by id. The remaining columns exist so development databases and
    tests can hold realistic accounts.
    """
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_user_registered", "user_registered"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_login = Column(String(60), nullable=False, default="")
    user_email = Column(String(100), nullable=False, default="")
    registered_at = Column(
        "user_registered",
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
