"""
All database models. Imported here so Base.metadata sees them for create_all().
"""

from .base import RecordBase
from .user import User
from .session import SessionRecord

__all__ = [
    "RecordBase",
    "User",
    "SessionRecord",
]
