"""Traced chat and transcript logging routes."""

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from ...app import IApplication
from ...errors import InvalidTurnRequest
from ...models import RelayMode, TurnRequest
from .common import TurnResponse, error_response


class ChatRequest(BaseModel):
    """Request model shared by traced chat and transcript logging."""

    messages: list[dict[str, Any]] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    user: str = "unknown"
    tags: list[str] = Field(default_factory=list)
    modelName: str | dict[str, Any] | None = None

    @property
    def model_name(self) -> str | None:
        if isinstance(self.modelName, dict):
            model = self.modelName.get("model")
            return model if isinstance(model, str) else None
        return self.modelName


class LogResponse(BaseModel):
    """Response model for transcript logging."""

    spanId: str | None


def create_trace_router(app: IApplication) -> APIRouter:
    """Create trace router."""
    router = APIRouter(prefix="/api", tags=["trace"])

    @router.post("/trace")
    async def traced_chat(body: ChatRequest, request: Request):
        """Send the latest message to the engine and trace the turn, failed or not."""
        if not body.messages:
            return error_response(400, "messages are required in the request body")

        content = body.messages[-1].get("content")
        client_ip = request.client.host if request.client else body.user
        turn_request = TurnRequest(
            user_id=client_ip,
            action={"type": "text", "payload": content if isinstance(content, str) else ""},
            mode=RelayMode.API,
            session_id=None if body.user == "unknown" else body.user,
            origin=request.headers.get("origin"),
            tags=body.tags,
        )
        try:
            reply = await app.relay.handle_turn(turn_request, trace_upstream_failure=True)
        except InvalidTurnRequest as e:
            return error_response(400, str(e))
        if reply.status_code >= 400:
            return TurnResponse(app.relay, reply)
        return TurnResponse(app.relay, reply, content={"response": reply.body})

    @router.post("/log", response_model=LogResponse)
    async def log_transcript(body: ChatRequest):
        """Record an already-completed exchange as one LLM span."""
        try:
            span_id = app.transcripts.log_transcript(
                body.messages,
                metadata=body.metadata,
                user=body.user,
                tags=body.tags,
                model_name=body.model_name,
            )
        except InvalidTurnRequest as e:
            return error_response(400, str(e))
        if span_id is None:
            return error_response(500, "Failed to record transcript")
        return {"spanId": span_id}

    return router
