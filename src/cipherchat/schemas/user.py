"""User and key directory Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cipherchat.services.keygen import is_valid_pem


class RegisterRequest(BaseModel):
    """Schema for creating a relay account."""

    display_name: str = Field(..., min_length=1, max_length=100, description="Name shown to other users")
    email: str | None = Field(None, max_length=320, description="Optional contact address")


class RegisterResponse(BaseModel):
    """Registration response with the new identity and its bearer token."""

    user_id: str = Field(..., description="Stable opaque user identifier")
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type (always 'bearer')")


class UserSummary(BaseModel):
    """Public view of another user."""

    user_id: str
    display_name: str
    email: str | None
    has_encryption_enabled: bool
    has_public_key: bool

    model_config = ConfigDict(from_attributes=True)


class PublicKeyResponse(BaseModel):
    """Key directory lookup result."""

    user_id: str
    public_key: str | None = Field(..., description="PEM public key, or null if never generated")
    fingerprint: str | None = Field(None, description="BLAKE3 fingerprint for out-of-band checks")


class KeyPairUpload(BaseModel):
    """A user's freshly generated key pair."""

    public_key: str = Field(..., description="PEM-encoded RSA public key")
    private_key: str = Field(..., description="Base64 of the PEM-encoded private key")

    @field_validator("public_key")
    @classmethod
    def validate_public_key(cls, v: str) -> str:
        """Reject text that is not PEM armoured."""
        if not is_valid_pem(v):
            raise ValueError("Public key must be PEM encoded")
        return v


class OwnKeysResponse(BaseModel):
    """The caller's own directory entry."""

    public_key: str | None
    private_key: str | None = Field(..., description="Base64 of the PEM-encoded private key")
    has_encryption_enabled: bool


class EncryptionToggle(BaseModel):
    """Request to switch encryption on or off."""

    has_encryption_enabled: bool
