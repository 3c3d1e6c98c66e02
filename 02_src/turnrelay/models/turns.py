"""Turn-related data models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class RelayMode(str, Enum):
    """Which client surface a turn came from."""

    WIDGET = "widget"
    API = "api"


class TurnState(str, Enum):
    """Lifecycle of one relayed turn."""

    FORWARDING = "forwarding"
    REPLIED_TO_CLIENT = "replied_to_client"
    SYNTHESIZING_TRACE = "synthesizing_trace"
    DONE = "done"
    FAILED_UPSTREAM = "failed_upstream"
    REPLY_FAILED = "reply_failed"


ALLOWED_TRANSITIONS: dict[TurnState, set[TurnState]] = {
    TurnState.FORWARDING: {TurnState.REPLIED_TO_CLIENT, TurnState.FAILED_UPSTREAM},
    TurnState.REPLIED_TO_CLIENT: {
        TurnState.SYNTHESIZING_TRACE,
        TurnState.REPLY_FAILED,
        TurnState.DONE,
    },
    TurnState.SYNTHESIZING_TRACE: {TurnState.DONE},
    TurnState.FAILED_UPSTREAM: {TurnState.SYNTHESIZING_TRACE, TurnState.DONE},
    TurnState.REPLY_FAILED: set(),
    TurnState.DONE: set(),
}


@dataclass
class TurnRequest:
    """An inbound conversational request."""

    user_id: str
    action: dict[str, Any]
    mode: RelayMode = RelayMode.API
    project_id: str | None = None
    version_id: str | None = None
    session_id: str | None = None
    origin: str | None = None
    user_agent: str | None = None
    authorization: str | None = None
    config: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)  # other body keys, relayed as-is
    tags: list[str] = field(default_factory=list)

    @property
    def action_type(self) -> str | None:
        return self.action.get("type") if isinstance(self.action, dict) else None

    @property
    def is_launch(self) -> bool:
        """Session bootstrap actions carry no conversational content."""
        return self.action_type == "launch"

    @property
    def user_message(self) -> str:
        """The utterance that triggered the turn, as text."""
        payload = self.action.get("payload") if isinstance(self.action, dict) else None
        if payload is None:
            return ""
        if isinstance(payload, str):
            return payload
        if isinstance(payload, dict):
            for key in ("query", "label", "text"):
                if isinstance(payload.get(key), str):
                    return payload[key]
        return str(payload)


@dataclass
class Turn:
    """One request/response cycle and its trace events."""

    request: TurnRequest
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: TurnState = TurnState.FORWARDING
    upstream_status: int | None = None
    upstream_error: str | None = None

    def transition(self, new_state: TurnState) -> None:
        """Move to `new_state`, rejecting moves the lifecycle does not allow."""
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Turn {self.id}: invalid transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
