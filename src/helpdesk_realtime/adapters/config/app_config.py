"""12-factor configuration adapter using environment variables and TOML config."""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_TRANSPORTS = ("polling", "websocket")


class AppConfig(BaseSettings):
    """Application configuration following 12-factor principles."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Host to bind the server to")
    port: int = Field(default=8000, description="Port to bind the server to")
    reload: bool = Field(default=False, description="Enable auto-reload for development")

    # Realtime transport configuration
    socketio_path: str = Field(
        default="socket.io", description="Path the realtime endpoint is mounted at"
    )
    cors_allowed_origins: str = Field(
        default="*",
        description="Comma-separated origins allowed to open realtime connections ('*' for any)",
    )
    ping_interval_seconds: float = Field(
        default=25.0, description="Interval between server heartbeats in seconds"
    )
    ping_timeout_seconds: float = Field(
        default=60.0, description="Seconds without heartbeat reply before a session is dropped"
    )
    transports: str = Field(
        default="polling,websocket",
        description="Comma-separated transport negotiation order (polling first, then upgrade)",
    )

    # Client reconnection policy
    reconnection_attempts: int = Field(
        default=5, description="Reconnection attempts after an unexpected drop"
    )
    reconnection_delay_seconds: float = Field(
        default=1.0, description="Fixed delay between reconnection attempts in seconds"
    )
    reconnection_delay_min_seconds: float = Field(
        default=1.0, description="Lower bound for the reconnection delay"
    )
    reconnection_delay_max_seconds: float = Field(
        default=5.0, description="Upper bound for the reconnection delay"
    )
    handshake_timeout_seconds: float = Field(
        default=20.0, description="Upper bound for the initial connection handshake"
    )
    ack_timeout_seconds: float = Field(
        default=10.0, description="Upper bound for waiting on an event acknowledgement"
    )
    viewer_wait_retries: int = Field(
        default=50,
        description="How many times a ticket page polls for a connection before degrading",
    )
    viewer_wait_interval_seconds: float = Field(
        default=0.1, description="Delay between connection polls of a ticket page"
    )

    # Roster TOML file path
    # If not set, will try roster.example.toml in project root as fallback
    roster_file: str | None = Field(
        default="roster.example.toml",
        description="Path to TOML file with the admins, agents and tickets to seed",
    )

    # Client configuration
    server_url: str = Field(
        default="http://localhost:8000", description="Base URL of the helpdesk server"
    )
    api_timeout_seconds: int = Field(
        default=10, description="Timeout for REST requests in seconds"
    )
    client_state_file: str = Field(
        default="~/.helpdesk-realtime/session.json",
        description="Where the command line client keeps its login",
    )

    @field_validator("transports")
    @classmethod
    def validate_transports(cls, v: str) -> str:
        """Validate every transport is either 'polling' or 'websocket'."""
        names = [name.strip().lower() for name in v.split(",") if name.strip()]
        if not names:
            raise ValueError("transports must name at least one transport")
        invalid = [name for name in names if name not in VALID_TRANSPORTS]
        if invalid:
            raise ValueError(
                f"transports must be a list of 'polling' and 'websocket', got: {', '.join(invalid)}"
            )
        return ",".join(names)

    @field_validator("reconnection_attempts", "viewer_wait_retries")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Validate retry counts are not negative."""
        if v < 0:
            raise ValueError("retry counts must not be negative")
        return v

    @field_validator(
        "handshake_timeout_seconds",
        "ack_timeout_seconds",
        "ping_interval_seconds",
        "ping_timeout_seconds",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate timeouts are positive."""
        if v <= 0:
            raise ValueError("timeouts and intervals must be positive")
        return v

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> "AppConfig":
        """Validate the reconnection delay bounds are ordered."""
        if self.reconnection_delay_min_seconds > self.reconnection_delay_max_seconds:
            raise ValueError(
                "reconnection_delay_min_seconds must not exceed reconnection_delay_max_seconds"
            )
        return self

    @property
    def transport_list(self) -> list[str]:
        """Transports in negotiation order."""
        return self.transports.split(",")

    @property
    def cors_origins(self) -> str | list[str]:
        """CORS origins in the form the realtime server expects."""
        if self.cors_allowed_origins.strip() == "*":
            return "*"
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    @property
    def reconnection_delay(self) -> float:
        """Reconnection delay clamped into its configured bounds."""
        return max(
            self.reconnection_delay_min_seconds,
            min(self.reconnection_delay_max_seconds, self.reconnection_delay_seconds),
        )

    def _load_toml_data(self) -> dict[str, Any]:
        """Load and parse the roster TOML file."""
        if not self.roster_file:
            raise ValueError("roster_file must be set to load the roster")

        roster_path = Path(self.roster_file)
        if not roster_path.exists():
            raise FileNotFoundError(f"Roster file not found: {roster_path}")

        with open(roster_path, "rb") as f:
            return tomllib.load(f)

    def get_roster_config(self) -> dict[str, list[dict[str, Any]]]:
        """Parse and return the ``admins``, ``agents`` and ``tickets`` tables of the roster file.

        Raises ValueError if a section is not a list of tables.
        """
        toml_data = self._load_toml_data()

        result: dict[str, list[dict[str, Any]]] = {}
        for section in ("admins", "agents", "tickets"):
            entries = toml_data.get(section, [])
            if not isinstance(entries, list):
                raise ValueError(f"TOML roster '{section}' must be a list")
            result[section] = [entry for entry in entries if isinstance(entry, dict)]
        return result
