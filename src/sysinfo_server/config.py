"""sysinfo-server configuration, loaded from .env via pydantic-settings."""

import ipaddress
from enum import Enum

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from sysinfo_server.errors import ConfigError

DEFAULT_RATE_LIMIT = 100


class Mode(Enum):
    """Which front ends run in this process."""

    STDIO = "stdio"
    HTTP = "http"
    BOTH = "both"
    REST_ONLY = "rest-only"

    @classmethod
    def parse(cls, value: str | None) -> "Mode":
        """Parse a mode selector; unknown or empty values mean BOTH."""
        key = (value or "").strip().lower().replace("_", "-")
        for mode in cls:
            if mode.value == key:
                return mode
        return cls.BOTH


class Settings(BaseSettings):
    """All sysinfo-server configuration. Reads from .env file and environment variables."""

    # --- Listeners ---
    server_host: str = Field(default="0.0.0.0", description="Bind IP for REST and MCP HTTP")
    server_port: int = Field(default=8080, ge=0, le=65535, description="REST API port")
    mcp_port: int = Field(default=8081, ge=0, le=65535, description="MCP streamable HTTP port")
    mcp_mode: str = Field(
        default="both",
        description="Operating mode: stdio|http|both|rest-only",
    )

    # --- REST access control ---
    auth_username: str = Field(default="admin")
    auth_password: str = Field(default="password123")
    rate_limit: int = Field(
        default=DEFAULT_RATE_LIMIT,
        description="REST requests allowed per 60 second window",
    )

    # --- Logging ---
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(
        default="console",
        description="Log format: 'console' for dev, 'json' for production",
    )

    # --- Shutdown ---
    shutdown_grace_seconds: float = Field(default=5.0, ge=0)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @field_validator("server_host")
    @classmethod
    def _check_host(cls, value: str) -> str:
        ipaddress.ip_address(value)
        return value

    @field_validator("rate_limit", mode="before")
    @classmethod
    def _lenient_rate_limit(cls, value: object) -> int:
        try:
            parsed = int(str(value).strip())
        except (TypeError, ValueError):
            return DEFAULT_RATE_LIMIT
        return parsed if parsed > 0 else DEFAULT_RATE_LIMIT

    @property
    def mode(self) -> Mode:
        return Mode.parse(self.mcp_mode)

    @property
    def expected_credentials(self) -> str:
        """The literal "username:password" string Basic auth must match."""
        return f"{self.auth_username}:{self.auth_password}"


def load_settings(**overrides) -> Settings:
    """Build Settings from the environment, turning validation failures into ConfigError."""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']).upper()}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from exc
