"""
Consultancy sessions. One row per conversation.
Sequences (chat transcript, research findings) are stored as JSON arrays.
"""

from typing import Optional

from sqlalchemy import String, Text, Integer, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from .base import RecordBase


class SessionRecord(RecordBase):
    __tablename__ = "sessions"

    # The foreign key is the access policy: only issued identities may open sessions
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # [{"role": "user|pedro|juan|system", "content": "...", "timestamp": 1700000000000}]
    chat_history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    company_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    research_results: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    report_final: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    current_state: Mapped[str] = mapped_column(String, nullable=False, default="WAITING_FOR_INFO")
    research_counter: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
