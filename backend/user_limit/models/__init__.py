"""SQLAlchemy Models for the user limit service"""

from .base import Base
from .user import User
from .option import Option

__all__ = [
    "Base",
    "User",
    "Option",
]
