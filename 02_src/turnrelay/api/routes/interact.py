"""Interaction API routes."""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ...app import IApplication
from ...errors import InvalidTurnRequest, UpstreamFailure
from ...logging_config import get_logger
from ...models import RelayMode, TurnRequest
from .common import TurnResponse, error_response, json_body

logger = get_logger(__name__)

DEMO_USER_ID = "demo"
# Body keys consumed by the relay itself; everything else goes upstream unchanged.
_RESERVED_KEYS = ("action", "config", "versionID", "sessionID")


def build_turn_request(
    body: dict[str, Any],
    request: Request,
    user_id: str,
    mode: RelayMode,
    project_id: str | None = None,
) -> TurnRequest:
    """Turn an inbound interact call into a TurnRequest."""
    headers = dict(request.headers)
    config = body.get("config")
    return TurnRequest(
        user_id=user_id,
        action=body.get("action"),
        mode=mode,
        project_id=project_id,
        version_id=headers.get("versionid") or body.get("versionID"),
        session_id=headers.get("sessionid") or body.get("sessionID"),
        origin=headers.get("origin"),
        user_agent=headers.get("user-agent"),
        authorization=headers.get("authorization"),
        config=config if isinstance(config, dict) else {},
        headers=headers,
        extra={key: value for key, value in body.items() if key not in _RESERVED_KEYS},
    )


def create_interact_router(app: IApplication) -> APIRouter:
    """Create interaction router."""
    router = APIRouter(tags=["interact"])

    async def relay_turn(
        request: Request, user_id: str, mode: RelayMode, project_id: str | None = None
    ):
        try:
            body = await json_body(request)
            turn_request = build_turn_request(body, request, user_id, mode, project_id)
            reply = await app.relay.handle_turn(turn_request)
        except (ValueError, InvalidTurnRequest) as e:
            return error_response(400, str(e))
        return TurnResponse(app.relay, reply)

    @router.post("/public/public/{project_id}/state/user/{user_id}/interact")
    async def widget_interact(project_id: str, user_id: str, request: Request):
        """Relay a turn from the web chat widget."""
        return await relay_turn(request, user_id, RelayMode.WIDGET, project_id)

    @router.post("/public/{project_id}/state/user/{user_id}/interact")
    async def api_interact(project_id: str, user_id: str, request: Request):
        """Relay a turn using the configured engine credentials."""
        return await relay_turn(request, user_id, RelayMode.API, project_id)

    @router.post("/api/interact")
    async def demo_interact(request: Request):
        """Relay a turn for the demo user."""
        return await relay_turn(request, DEMO_USER_ID, RelayMode.API)

    @router.get("/public/{project_id}/publishing")
    async def publishing(project_id: str, request: Request):
        """Pass the widget's publishing lookup through to the engine."""
        try:
            response = await app.relay.passthrough(
                "GET",
                request.url.path,
                dict(request.headers),
                params=dict(request.query_params),
            )
        except UpstreamFailure as e:
            logger.error("Publishing proxy failed: %s", e)
            return error_response(500, "Proxy error")
        return JSONResponse(response.body, status_code=response.status_code)

    return router
