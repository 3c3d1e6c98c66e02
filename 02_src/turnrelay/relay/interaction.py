"""Interaction relay: forwards a turn, answers the caller, hands off tracing."""

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol
from urllib.parse import quote

from ..config import RelayConfig
from ..engine import detect_shape
from ..errors import InvalidTurnRequest, UpstreamFailure
from ..logging_config import get_logger
from ..models import RelayMode, Turn, TurnRequest, TurnState
from ..worker import ITraceWorker, TraceJob
from .engine_client import EngineResponse, IDialogueEngineClient

logger = get_logger(__name__)

HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
    }
)
# Set explicitly per mode, never copied from the caller.
_MODE_HEADERS = frozenset({"authorization", "versionid"})

MIRRORED_RESPONSE_HEADERS = ("content-type", "cache-control", "expires")

DEFAULT_TURN_CONFIG = {"tts": False, "stripSSML": True, "stopAll": True}
ALWAYS_EXCLUDED_TYPES = ("block", "flow")
# Needed for trace synthesis; removed from the client reply instead.
NEVER_EXCLUDED_TYPES = frozenset({"debug"})


def forward_headers(inbound: Mapping[str, str]) -> dict[str, str]:
    """Caller headers safe to send on to the dialogue engine."""
    return {
        name: value
        for name, value in inbound.items()
        if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() not in _MODE_HEADERS
    }


def mirrored_headers(upstream: Mapping[str, str]) -> dict[str, str]:
    """The subset of upstream response headers returned to the caller."""
    lowered = {name.lower(): value for name, value in upstream.items()}
    return {name: lowered[name] for name in MIRRORED_RESPONSE_HEADERS if name in lowered}


def normalize_turn_config(config: Mapping[str, Any] | None) -> dict[str, Any]:
    """Turn config sent upstream: defaults, caller overrides, trace filtering."""
    normalized = {**DEFAULT_TURN_CONFIG, **(config or {})}
    requested = normalized.get("excludeTypes") or []
    if not isinstance(requested, list):
        requested = []
    excluded = list(ALWAYS_EXCLUDED_TYPES)
    for trace_type in requested:
        if trace_type not in excluded and trace_type not in NEVER_EXCLUDED_TYPES:
            excluded.append(trace_type)
    normalized["excludeTypes"] = excluded
    return normalized


@dataclass
class TurnReply:
    """What the caller receives, plus the deferred trace work."""

    status_code: int
    body: Any
    turn: Turn
    headers: dict[str, str] = field(default_factory=dict)
    trace_job: TraceJob | None = None


class IInteractionRelay(Protocol):
    """Relays turns to the dialogue engine."""

    async def handle_turn(
        self, request: TurnRequest, trace_upstream_failure: bool = False
    ) -> TurnReply:
        """Forward the turn and build the caller's reply."""
        ...

    def dispatch(self, reply: TurnReply) -> None:
        """Hand the reply's trace job to the worker. Never raises."""
        ...

    def abandon(self, reply: TurnReply, reason: str) -> None:
        """The reply could not be delivered; drop its trace work."""
        ...

    async def passthrough(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        params: dict[str, str] | None = None,
        body: Any = None,
    ) -> EngineResponse:
        """Plain relay for non-interaction engine endpoints."""
        ...


class InteractionRelay:
    """Forwards turns and answers callers before any trace work happens.

    `handle_turn` covers forwarding and building the reply; the trace job it
    attaches is handed to the worker by `dispatch`, which the HTTP layer runs
    only after the response has been sent.
    """

    def __init__(
        self,
        engine: IDialogueEngineClient,
        worker: ITraceWorker,
        config: RelayConfig,
    ):
        self._engine = engine
        self._worker = worker
        self._config = config

    async def handle_turn(
        self, request: TurnRequest, trace_upstream_failure: bool = False
    ) -> TurnReply:
        """Forward the turn and build the caller's reply.

        Raises InvalidTurnRequest for requests that cannot be forwarded. An
        upstream failure is answered with a 500 reply; it is traced only when
        `trace_upstream_failure` is set.
        """
        if not isinstance(request.action, dict) or not request.action.get("type"):
            raise InvalidTurnRequest("action with a type is required")

        turn = Turn(request=request)
        context = {"turn_id": turn.id, "user_id": request.user_id, "mode": request.mode.value}
        path, headers = self._outbound(request)
        body = {
            **request.extra,
            "action": request.action,
            "config": normalize_turn_config(request.config),
        }
        if request.mode is RelayMode.API:
            body["versionID"] = request.version_id or self._config.engine_version_id

        try:
            response = await self._engine.interact(path, body, headers)
        except UpstreamFailure as e:
            return self._upstream_failed(turn, e, trace_upstream_failure, context)

        return self._reply(turn, response, context)

    def _outbound(self, request: TurnRequest) -> tuple[str, dict[str, str]]:
        user = quote(request.user_id, safe="")
        if request.mode is RelayMode.WIDGET:
            if not request.project_id:
                raise InvalidTurnRequest("project id is required for widget requests")
            path = f"/public/{quote(request.project_id, safe='')}/state/user/{user}/interact"
            headers = forward_headers(request.headers)
            if request.authorization:
                headers["Authorization"] = request.authorization
            if request.version_id:
                headers["versionID"] = request.version_id
        else:
            path = f"/state/user/{user}/interact"
            headers = {
                "Content-Type": "application/json",
                "versionID": request.version_id or self._config.engine_version_id,
            }
            if self._config.engine_api_key:
                headers["Authorization"] = self._config.engine_api_key
        return path, headers

    def _upstream_failed(
        self,
        turn: Turn,
        error: UpstreamFailure,
        trace: bool,
        context: dict[str, Any],
    ) -> TurnReply:
        turn.upstream_status = error.status_code
        turn.upstream_error = str(error)
        turn.transition(TurnState.FAILED_UPSTREAM)
        logger.error(
            "Upstream failure: %s",
            error,
            extra={"context": {**context, "status": error.status_code}},
        )

        job = None
        if trace:
            job = TraceJob(turn=turn, upstream_error=str(error))
        else:
            turn.transition(TurnState.DONE)
        return TurnReply(
            status_code=500,
            body={"error": str(error)},
            turn=turn,
            trace_job=job,
        )

    def _reply(
        self, turn: Turn, response: EngineResponse, context: dict[str, Any]
    ) -> TurnReply:
        turn.upstream_status = response.status_code
        shape = detect_shape(response.body)
        sanitized = shape.sanitize(response.body)
        # Events are read from the original body; only the reply is filtered.
        # A body that cannot be read as events costs the trace, not the reply.
        try:
            events = shape.events(response.body, turn.started_at)
        except Exception:
            logger.exception("Failed to read trace events", extra={"context": context})
            events = None

        turn.transition(TurnState.REPLIED_TO_CLIENT)
        logger.debug(
            "Turn answered",
            extra={"context": {**context, "shape": shape.name, "events": len(events or ())}},
        )

        job = None
        if turn.request.is_launch or events is None:
            turn.transition(TurnState.DONE)
        else:
            job = TraceJob(turn=turn, events=events)

        return TurnReply(
            status_code=response.status_code,
            body=sanitized,
            turn=turn,
            headers=mirrored_headers(response.headers),
            trace_job=job,
        )

    def dispatch(self, reply: TurnReply) -> None:
        """Hand the reply's trace job to the worker. Never raises."""
        if reply.trace_job is None:
            return
        try:
            self._worker.submit(reply.trace_job)
        except Exception:
            logger.exception(
                "Failed to queue trace job", extra={"context": {"turn_id": reply.turn.id}}
            )

    def abandon(self, reply: TurnReply, reason: str) -> None:
        """The reply could not be delivered; drop its trace work."""
        if reply.turn.state is TurnState.REPLIED_TO_CLIENT:
            reply.turn.transition(TurnState.REPLY_FAILED)
        reply.trace_job = None
        logger.warning(
            "Reply not delivered: %s", reason, extra={"context": {"turn_id": reply.turn.id}}
        )

    async def passthrough(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        params: dict[str, str] | None = None,
        body: Any = None,
    ) -> EngineResponse:
        """Plain relay for non-interaction engine endpoints."""
        return await self._engine.relay(
            method, path, forward_headers(headers) | _mode_headers(headers), params, body
        )


def _mode_headers(inbound: Mapping[str, str]) -> dict[str, str]:
    """Authorization/versionID headers carried by the caller, as-is."""
    return {name: value for name, value in inbound.items() if name.lower() in _MODE_HEADERS}
