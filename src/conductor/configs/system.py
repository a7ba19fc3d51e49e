from datetime import timedelta

from pydantic import BaseModel, Field


class TransportConfig(BaseModel):
    """Configuration for the default httpx transport."""

    base_url: str = Field(
        default="",
        description="Base URL prepended to relative request targets",
    )
    timeout: timedelta = Field(
        default=timedelta(seconds=30),
        description="Socket-level timeout applied by httpx to every call",
    )
    follow_redirects: bool = Field(
        default=True, description="Follow HTTP redirects"
    )


class LoggingConfig(BaseModel):
    """Logging bootstrap settings."""

    level: str = Field(default="INFO", description="Root log level")
    json_output: bool = Field(
        default=True, description="Emit JSON lines instead of plain text"
    )
    levels: dict[str, str] = Field(
        default_factory=lambda: {
            "httpx": "WARNING",
            "httpcore": "WARNING",
            "opentelemetry": "WARNING",
        },
        description="Per-logger level overrides, e.g. {'conductor.engine': 'DEBUG'}",
    )
