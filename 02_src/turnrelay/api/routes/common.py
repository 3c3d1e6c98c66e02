"""Helpers shared by the route modules."""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.background import BackgroundTask
from starlette.types import Receive, Scope, Send

from ...relay import IInteractionRelay, TurnReply


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def json_body(request: Request) -> dict[str, Any]:
    """Request body as a JSON object. Raises ValueError otherwise."""
    body = await request.json()
    if not isinstance(body, dict):
        raise ValueError("request body must be a JSON object")
    return body


class TurnResponse(JSONResponse):
    """Sends a relayed turn, then hands its trace job to the worker.

    Starlette runs the background task only once the body has been sent; if
    sending fails the job is abandoned instead.
    """

    def __init__(self, relay: IInteractionRelay, reply: TurnReply, content: Any = None):
        self._relay = relay
        self._reply = reply
        super().__init__(
            content=reply.body if content is None else content,
            status_code=reply.status_code,
            headers=reply.headers,
            background=BackgroundTask(self._hand_off),
        )

    async def _hand_off(self) -> None:
        # Runs on the event loop; the worker queue is not thread-safe.
        self._relay.dispatch(self._reply)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except Exception as e:
            self._relay.abandon(self._reply, repr(e))
            raise
