"""Application settings and configuration.

This module defines all configuration options for the Wallet Bridge service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Wallet Bridge", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    server_name: str = Field(default="localhost.localdomain", alias="SERVER_NAME")

    # Wallet signature login
    wallet_auth_enabled: bool = Field(default=True, alias="WALLET_AUTH_ENABLED")
    wallet_login_type: str = Field(
        default="m.login.wallet.signature",
        alias="WALLET_LOGIN_TYPE",
    )
    nonce_ttl_seconds: int = Field(default=300, alias="NONCE_TTL_SECONDS")
    nonce_max_entries: int = Field(default=10_000, alias="NONCE_MAX_ENTRIES")
    # Reserved: accepted so deployments can set it, but nothing joins rooms yet.
    wallet_auto_join_room: str | None = Field(default=None, alias="WALLET_AUTO_JOIN_ROOM")

    # Session minting
    session_provider: str = Field(default="local", alias="SESSION_PROVIDER")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # External homeserver integration
    homeserver_base_url: str | None = Field(default=None, alias="HOMESERVER_BASE_URL")
    homeserver_shared_secret: str | None = Field(
        default=None,
        alias="HOMESERVER_SHARED_SECRET",
    )
    homeserver_audience: str = Field(default="homeserver", alias="HOMESERVER_JWT_AUD")
    homeserver_token_ttl_seconds: int = Field(
        default=60,
        alias="HOMESERVER_TOKEN_TTL_SECONDS",
    )
    homeserver_http_timeout_seconds: float = Field(
        default=10.0,
        alias="HOMESERVER_HTTP_TIMEOUT_SECONDS",
    )

    # Delegation directory ledger
    database_url: str = Field(default="sqlite:///./wallet_bridge.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    directory_program_id: str = Field(
        default="27JU28YBf5RJmEHAn9BwnWFyfPMLkUdSafKgz9xQB9zn",
        alias="DIRECTORY_PROGRAM_ID",
    )
    ledger_lamports_per_byte_year: int = Field(
        default=3480,
        alias="LEDGER_LAMPORTS_PER_BYTE_YEAR",
    )
    # Balance the faucet tops a wallet up to; 0 disables the faucet route.
    ledger_faucet_lamports: int = Field(
        default=10_000_000,
        ge=0,
        alias="LEDGER_FAUCET_LAMPORTS",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def homeserver_enabled(self) -> bool:
        """Return True when sessions are delegated to an external homeserver."""
        return self.session_provider == "homeserver" and bool(self.homeserver_base_url)

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url


settings = Settings()  # type: ignore[call-arg]
