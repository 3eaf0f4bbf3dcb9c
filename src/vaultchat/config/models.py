"""Pydantic v2 models for vaultchat.yaml configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatSettings(BaseModel):
    """User settings for driving the assistant CLI."""

    model_config = ConfigDict(extra="forbid")

    node_location: str | None = Field(
        default=None,
        description="Path to the JavaScript runtime (auto-detected when empty)",
    )
    claude_location: str | None = Field(
        default=None,
        description="Path to the assistant entry point (auto-detected when empty)",
    )
    wsl_prefix: list[str] = Field(
        default_factory=list,
        description="Indirection prefix, e.g. ['wsl.exe', '-d', 'Ubuntu']",
    )
    include_file_context: bool = Field(
        default=True,
        description="Prefix prompts with the path of the active file",
    )
    debug_context: bool = Field(
        default=False,
        description="Log composed prompts and raw stream frames",
    )
    shutdown_timeout: float = Field(
        default=3.0,
        gt=0,
        description="Seconds to wait after SIGTERM before SIGKILL on shutdown",
    )

    @field_validator("node_location", "claude_location", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value
