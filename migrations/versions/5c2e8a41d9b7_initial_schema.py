"""initial schema

Revision ID: 5c2e8a41d9b7
Revises:
Create Date: 2026-10-19 09:12:44.508311

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c2e8a41d9b7"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create user accounts, chats and chat messages."""
    op.create_table(
        "user_account",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("public_key", sa.Text(), nullable=True),
        sa.Column("private_key", sa.Text(), nullable=True),
        sa.Column("has_encryption_enabled", sa.Boolean(), nullable=False),
        sa.Column("keys_created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_table(
        "chat",
        sa.Column("id", sa.String(length=160), nullable=False),
        sa.Column("participant_a", sa.String(length=64), nullable=False),
        sa.Column("participant_b", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_message_text", sa.Text(), nullable=True),
        sa.Column("last_message_sender_id", sa.String(length=64), nullable=True),
        sa.Column("last_message_is_encrypted", sa.Boolean(), nullable=False),
        sa.Column("last_message_time", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["participant_a"], ["user_account.user_id"]),
        sa.ForeignKeyConstraint(["participant_b"], ["user_account.user_id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "chat_message",
        sa.Column("seq", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("chat_id", sa.String(length=160), nullable=False),
        sa.Column("sender_id", sa.String(length=64), nullable=False),
        sa.Column("sender_name", sa.Text(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("is_encrypted", sa.Boolean(), nullable=False),
        sa.Column("encrypted_data", sa.Text(), nullable=True),
        sa.Column("encrypted_key", sa.Text(), nullable=True),
        sa.Column("iv", sa.String(length=64), nullable=True),
        sa.Column("cipher_algorithm", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["chat_id"], ["chat.id"]),
        sa.ForeignKeyConstraint(["sender_id"], ["user_account.user_id"]),
        sa.PrimaryKeyConstraint("seq"),
    )
    op.create_index(op.f("ix_chat_message_chat_id"), "chat_message", ["chat_id"], unique=False)


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index(op.f("ix_chat_message_chat_id"), table_name="chat_message")
    op.drop_table("chat_message")
    op.drop_table("chat")
    op.drop_table("user_account")
