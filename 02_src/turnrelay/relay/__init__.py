"""Interaction relay module."""

from .engine_client import DialogueEngineClient, EngineResponse, IDialogueEngineClient
from .interaction import (
    IInteractionRelay,
    InteractionRelay,
    TurnReply,
    forward_headers,
    mirrored_headers,
    normalize_turn_config,
)

__all__ = [
    "DialogueEngineClient",
    "EngineResponse",
    "IDialogueEngineClient",
    "IInteractionRelay",
    "InteractionRelay",
    "TurnReply",
    "forward_headers",
    "mirrored_headers",
    "normalize_turn_config",
]
