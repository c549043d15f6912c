"""Configuration management for the Book Catalog MCP Server.

Configuration covers four concerns:
1. Server Metadata - name and version announced to clients
2. Transport - stdio for local use, Streamable HTTP for shared deployments
3. Security - the token signing secret and the shared login password
4. Validation - type-safe configuration with Pydantic v2
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRET_KEY = "development-only-signing-secret-change-me"


class ServerConfig(BaseSettings):
    """Book catalog server configuration.

    Every field can be overridden with a ``BOOK_CATALOG_`` prefixed
    environment variable or an entry in a local ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="BOOK_CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="book-catalog",
        description="Server name announced during the protocol handshake",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    # === Database Configuration ===

    database_path: Path = Field(
        default=Path("data/catalog.db"),
        description="SQLite database file path",
    )

    # === Transport Configuration ===

    transport: str = Field(
        default="stdio",
        description="Primary transport mechanism",
        pattern=r"^(stdio|streamable_http)$",
    )

    http_host: str = Field(
        default="127.0.0.1",
        description="HTTP server host for Streamable HTTP transport",
    )

    http_port: int = Field(
        default=4000,
        description="HTTP server port for Streamable HTTP transport",
        ge=1024,  # Avoid privileged ports
        le=65535,
    )

    # === Security Configuration ===

    secret_key: str = Field(
        default=DEFAULT_SECRET_KEY,
        description="Secret used to sign and verify login tokens",
        min_length=32,
        repr=False,
    )

    # Every account shares this password. Known weakness, kept on purpose:
    # login only proves the caller knows the username and this value.
    shared_password: str = Field(
        default="secret",
        description="Password accepted for every user at login",
        min_length=1,
        repr=False,
    )

    token_algorithm: str = Field(
        default="HS256",
        description="HMAC algorithm used to sign tokens",
        pattern=r"^HS(256|384|512)$",
    )

    token_ttl_seconds: int | None = Field(
        default=None,
        description="Token lifetime; tokens never expire when unset",
        ge=1,
    )

    # === Subscriptions ===

    enable_subscriptions: bool = Field(
        default=True,
        description="Expose the bookAdded notification stream",
    )

    subscription_timeout_seconds: float = Field(
        default=30.0,
        description="How long a bookAdded stream call waits for events",
        gt=0,
        le=3600,
    )

    # === Development Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    # === Validation Methods ===

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Ensure the database directory exists."""
        abs_path = v.absolute()
        abs_path.parent.mkdir(parents=True, exist_ok=True)

        if not abs_path.parent.is_dir():
            raise ValueError(f"Database directory {abs_path.parent} is not accessible")

        return abs_path

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("Server name must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Server name must not exceed 50 characters")
        return v

    @field_validator("http_port")
    @classmethod
    def validate_http_port(cls, v: int) -> int:
        reserved_ports = {3306, 5432, 6379, 8443}
        if v in reserved_ports:
            raise ValueError(f"Port {v} is commonly reserved, choose another")
        return v

    # === Computed Properties ===

    @property
    def is_development(self) -> bool:
        """Whether fastmcp's own logs are shown too."""
        return self.debug or self.log_level == "DEBUG"

    @property
    def uses_default_secret(self) -> bool:
        return self.secret_key == DEFAULT_SECRET_KEY

    @property
    def server_info(self) -> dict[str, str]:
        """Name, version and transport, as logged by the startup banner."""
        return {
            "name": self.server_name,
            "version": self.server_version,
            "transport": self.transport,
        }

    def get_database_url(self) -> str:
        """Get SQLAlchemy database URL."""
        return f"sqlite:///{self.database_path}"


# === Global Configuration Instance ===


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Get or create the process-wide configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = ServerConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
