"""Locating the runtime and assistant executables."""

from __future__ import annotations

import shutil
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from vaultchat.config.models import ChatSettings

#: Executable name looked up on PATH when no override is configured.
DEFAULT_ENTRY = "claude"

_INSTALL_HINT = (
    "Make sure 'claude' is installed and on your PATH, or set claude_location.\n"
    "Install: npm install -g @anthropic-ai/claude-code"
)


class SpawnError(Exception):
    """The assistant process could not be started."""


class CommandNotFoundError(SpawnError):
    """An executable needed to start the assistant could not be located."""


class ResolvedCommand(BaseModel):
    """Everything needed to build the assistant's argument vector."""

    model_config = ConfigDict(frozen=True)

    runtime: str | None = Field(
        default=None,
        description="Runtime launcher (e.g. node); None runs the entry directly",
    )
    entry: str = Field(description="Assistant entry point")
    prefix: list[str] = Field(
        default_factory=list,
        description="Indirection prefix for cross-environment execution",
    )

    @property
    def needs_prefix(self) -> bool:
        return bool(self.prefix)

    def argv(self, args: list[str]) -> list[str]:
        """Return the full argument vector for *args*."""
        command = [self.entry, *args]
        if self.runtime:
            command.insert(0, self.runtime)
        if self.needs_prefix:
            return [*self.prefix, "--", *command]
        return command


@runtime_checkable
class CommandResolver(Protocol):
    """Anything that can turn user overrides into a ``ResolvedCommand``."""

    def resolve(
        self,
        runtime_override: str | None = None,
        entry_override: str | None = None,
    ) -> ResolvedCommand: ...


class PathCommandResolver:
    """Resolves the assistant from explicit overrides or ``PATH``.

    Platform-specific discovery (version managers, install directories)
    is left to richer resolvers; this one only consults ``shutil.which``.
    """

    def __init__(self, prefix: list[str] | None = None) -> None:
        self._prefix = list(prefix or [])

    @classmethod
    def from_settings(cls, settings: ChatSettings) -> PathCommandResolver:
        return cls(prefix=settings.wsl_prefix)

    def resolve(
        self,
        runtime_override: str | None = None,
        entry_override: str | None = None,
    ) -> ResolvedCommand:
        if entry_override:
            entry = entry_override
        elif self._prefix:
            # PATH on the far side of the prefix is not visible from here.
            entry = DEFAULT_ENTRY
        else:
            found = shutil.which(DEFAULT_ENTRY)
            if found is None:
                msg = f"Claude CLI not found.\n{_INSTALL_HINT}"
                raise CommandNotFoundError(msg)
            entry = found

        return ResolvedCommand(
            runtime=runtime_override or None,
            entry=entry,
            prefix=self._prefix,
        )
