"""Option SQLAlchemy model"""

from sqlalchemy import Column, Integer, String, Text, UniqueConstraint

from .base import Base


class Option(Base):
    """Named configuration value.

    Values are stored as text; typed access goes through the retention
    config store, which owns coercion and defaults.
    """
    __tablename__ = "options"
    __table_args__ = (
        UniqueConstraint("option_name", name="uq_options_option_name"),
    )

    option_id = Column(Integer, primary_key=True, autoincrement=True)
    option_name = Column(String(191), nullable=False)
    option_value = Column(Text, nullable=False, default="")
