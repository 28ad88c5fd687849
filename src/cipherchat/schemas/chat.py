"""Chat and message Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cipherchat.services.symmetric import IV_BYTES


class ChatCreate(BaseModel):
    """Schema for opening a chat with another user."""

    participant_id: str = Field(..., min_length=1, description="User id of the other participant")


class LastMessage(BaseModel):
    """Summary of the latest message in a chat."""

    text: str
    sender_id: str
    is_encrypted: bool


class ChatResponse(BaseModel):
    """Chat information returned by the API."""

    id: str
    participants: list[str]
    created_at: datetime
    last_message: LastMessage | None = None
    last_message_time: datetime | None = None


class MessageCreate(BaseModel):
    """Schema for posting a message to a chat.

    Either ``text`` (plaintext) or all envelope fields with
    ``is_encrypted=True``, never a mix.
    """

    text: str | None = Field(None, description="Plaintext body for unencrypted messages")
    is_encrypted: bool = False
    encrypted_data: str | None = Field(None, description="Base64 ciphertext")
    encrypted_key: str | None = Field(None, description="Base64 RSA-wrapped one-time key")
    iv: str | None = Field(None, description="Hex-encoded 16-byte IV")
    cipher_algorithm: str | None = Field(None, description="Symmetric construction of encrypted_data")

    @model_validator(mode="after")
    def check_envelope_consistency(self) -> "MessageCreate":
        """A message is encrypted if and only if it carries a full envelope."""
        envelope = (self.encrypted_data, self.encrypted_key, self.iv)
        if self.is_encrypted:
            if not all(envelope):
                raise ValueError("Encrypted messages require encrypted_data, encrypted_key and iv")
            if self.text is not None:
                raise ValueError("Encrypted messages must not carry plaintext")
            if len(self.iv or "") != IV_BYTES * 2:
                raise ValueError("iv must be the hex encoding of 16 bytes")
        else:
            if any(envelope) or self.cipher_algorithm is not None:
                raise ValueError("Plaintext messages must not carry envelope fields")
            if self.text is None:
                raise ValueError("Plaintext messages require text")
        return self


class MessageResponse(BaseModel):
    """Message document returned by the API."""

    seq: int
    chat_id: str
    sender_id: str
    sender_name: str
    text: str
    is_encrypted: bool
    encrypted_data: str | None
    encrypted_key: str | None
    iv: str | None
    cipher_algorithm: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
