# src/cipherchat/models/user.py
"""SQLAlchemy model for user accounts and their key directory entry."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cipherchat.db.session import Base
from cipherchat.db.time import utcnow


class UserAccount(Base):
    """A user known to the relay, doubling as that user's key directory document.

    The private key is stored as base64 of its PEM text. It is recoverable by
    anyone who can read this row; the relay is trusted not to look.
    """

    __tablename__ = "user_account"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)

    public_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    private_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    has_encryption_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    keys_created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def has_keys(self) -> bool:
        """Return True once the user has published a key pair."""
        return self.public_key is not None and self.private_key is not None
