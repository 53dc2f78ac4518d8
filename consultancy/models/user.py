"""
Users. Browsers obtain an anonymous identity before opening a session.
"""

from sqlalchemy import Boolean
from sqlalchemy.orm import Mapped, mapped_column

from .base import RecordBase


class User(RecordBase):
    __tablename__ = "users"

    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
