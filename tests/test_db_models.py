"""Unit tests for the ORM models in cipherchat.models.

These tests check mapping details the relay relies on: table names, the
nullable key columns, and the derived helpers on the model classes.
"""

from cipherchat.models import Chat, ChatMessage, UserAccount


def test_table_names():
    """Model classes expose expected __tablename__ values."""
    assert UserAccount.__tablename__ == "user_account"
    assert Chat.__tablename__ == "chat"
    assert ChatMessage.__tablename__ == "chat_message"


def test_key_columns_are_optional_until_generated():
    """A fresh account has no key material."""
    columns = UserAccount.__table__.c
    assert columns.public_key.nullable
    assert columns.private_key.nullable
    assert not columns.has_encryption_enabled.nullable


def test_envelope_columns_are_optional():
    """Plaintext messages carry no envelope."""
    columns = ChatMessage.__table__.c
    for name in ("encrypted_data", "encrypted_key", "iv", "cipher_algorithm"):
        assert columns[name].nullable
    assert not columns.text.nullable


def test_has_keys_requires_both_halves():
    user = UserAccount(user_id="u1", display_name="U", public_key="pem")
    assert not user.has_keys
    user.private_key = "b64"
    assert user.has_keys


def test_chat_participants_helpers():
    chat = Chat(id="a_b", participant_a="a", participant_b="b")
    assert chat.participants == ["a", "b"]
    assert chat.other_participant("a") == "b"
    assert chat.other_participant("b") == "a"


def test_chat_message_sequence_is_primary_key():
    assert [column.name for column in ChatMessage.__table__.primary_key] == ["seq"]
