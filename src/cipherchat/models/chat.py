# src/cipherchat/models/chat.py
"""Models describing one-to-one chats and the messages inside them."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cipherchat.db.session import Base
from cipherchat.db.time import utcnow


class Chat(Base):
    """Conversation between exactly two users.

    The identifier is derived from the sorted participant ids, so creating the
    same chat twice always lands on the same row.
    """

    __tablename__ = "chat"

    id: Mapped[str] = mapped_column(String(160), primary_key=True)
    participant_a: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_account.user_id"), nullable=False
    )
    participant_b: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_account.user_id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Denormalised summary of the most recent message for chat lists.
    last_message_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_sender_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_message_is_encrypted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_message_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def participants(self) -> list[str]:
        """Return both participant ids in sorted order."""
        return [self.participant_a, self.participant_b]

    def other_participant(self, user_id: str) -> str:
        """Return the participant that is not ``user_id``."""
        return self.participant_b if user_id == self.participant_a else self.participant_a


class ChatMessage(Base):
    """Message document stored by the relay.

    Encrypted messages carry the sealed envelope fields and a placeholder in
    ``text``; plaintext messages carry the body in ``text`` and no envelope.
    """

    __tablename__ = "chat_message"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_id: Mapped[str] = mapped_column(String(160), ForeignKey("chat.id"), nullable=False, index=True)
    sender_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_account.user_id"), nullable=False
    )
    sender_name: Mapped[str] = mapped_column(Text, nullable=False)

    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_encrypted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    encrypted_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    encrypted_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    iv: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cipher_algorithm: Mapped[str | None] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
