"""Configuration for the CLI probe."""

from datetime import timedelta

from pydantic import BaseModel, Field

from conductor.engine.models import QueueStrategy


class CLIConfig(BaseModel):
    """CLI probe settings (overrides applied on top of ``AppConfig``)."""

    targets: list[str] = Field(description="URLs to request")
    repeat: int = Field(default=1, ge=1, description="Times each URL is requested")
    capacity: int | None = Field(default=None, ge=0, description="In-flight cap")
    strategy: QueueStrategy | None = Field(default=None, description="Queue strategy")
    attempts: int | None = Field(default=None, ge=1, description="Retry attempts")
    timeout: timedelta | None = Field(default=None, description="Per-call timeout")
    key: str | None = Field(default=None, description="Coordination key for all calls")
    supersede: bool = Field(default=False, description="Abort older calls with the key")
    dedupe: bool = Field(default=False, description="Share in-flight results by key")
    method: str = Field(default="GET", description="HTTP method")
    debug: bool = Field(default=False, description="Enable debug logging")
