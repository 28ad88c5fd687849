"""Application settings and configuration.

This module defines all configuration options for Cipherchat, covering both
the relay service and the client-side encryption core. Settings are loaded
from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_RSA_KEY_SIZE = 2048
MAX_FEED_PAGE_SIZE = 500

CipherAlgorithm = Literal["aes-256-gcm", "aes-256-cbc"]
WrapPadding = Literal["oaep-sha256", "pkcs1v15"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Cipherchat Relay", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(default="dev-secret-key", alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./cipherchat.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Key material
    rsa_key_size: int = Field(default=MIN_RSA_KEY_SIZE, alias="RSA_KEY_SIZE")
    rsa_public_exponent: int = Field(default=65537, alias="RSA_PUBLIC_EXPONENT")
    key_wrap_padding: WrapPadding = Field(default="oaep-sha256", alias="KEY_WRAP_PADDING")
    cipher_algorithm: CipherAlgorithm = Field(default="aes-256-gcm", alias="CIPHER_ALGORITHM")

    # Sending policy
    allow_plaintext_fallback: bool = Field(default=False, alias="ALLOW_PLAINTEXT_FALLBACK")

    # Text shown in place of message bodies that cannot be displayed
    encrypted_text_placeholder: str = Field(
        default="[ENCRYPTED]",
        alias="ENCRYPTED_TEXT_PLACEHOLDER",
    )
    own_encrypted_placeholder: str = Field(
        default="[Your encrypted message]",
        alias="OWN_ENCRYPTED_PLACEHOLDER",
    )
    decryption_failed_placeholder: str = Field(
        default="[DECRYPTION FAILED]",
        alias="DECRYPTION_FAILED_PLACEHOLDER",
    )
    locked_message_placeholder: str = Field(
        default="[ENCRYPTED MESSAGE]",
        alias="LOCKED_MESSAGE_PLACEHOLDER",
    )

    # Relay client settings
    relay_base_url: str = Field(default="http://localhost:8000", alias="RELAY_BASE_URL")
    relay_http_timeout_seconds: float = Field(
        default=10.0,
        alias="RELAY_HTTP_TIMEOUT_SECONDS",
    )
    feed_poll_interval_seconds: float = Field(
        default=1.0,
        alias="FEED_POLL_INTERVAL_SECONDS",
    )
    feed_page_size: int = Field(default=100, alias="FEED_PAGE_SIZE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("rsa_key_size")
    @classmethod
    def validate_rsa_key_size(cls, v: int) -> int:
        """Reject moduli weaker than RSA-2048."""
        if v < MIN_RSA_KEY_SIZE:
            raise ValueError(f"RSA key size must be at least {MIN_RSA_KEY_SIZE} bits")
        return v

    @field_validator("feed_page_size")
    @classmethod
    def validate_feed_page_size(cls, v: int) -> int:
        """Keep polling pages within what the relay will serve."""
        if not 1 <= v <= MAX_FEED_PAGE_SIZE:
            raise ValueError(f"Feed page size must be between 1 and {MAX_FEED_PAGE_SIZE}")
        return v

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
