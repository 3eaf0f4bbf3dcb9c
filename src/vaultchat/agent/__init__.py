"""Assistant process control and command resolution."""

from vaultchat.agent.controller import (
    ControllerState,
    ConversationController,
    TurnOutcome,
)
from vaultchat.agent.resolver import (
    CommandNotFoundError,
    CommandResolver,
    PathCommandResolver,
    ResolvedCommand,
    SpawnError,
)

__all__ = [
    "CommandNotFoundError",
    "CommandResolver",
    "ControllerState",
    "ConversationController",
    "PathCommandResolver",
    "ResolvedCommand",
    "SpawnError",
    "TurnOutcome",
]
