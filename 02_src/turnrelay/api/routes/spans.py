"""Span record API routes."""

from pydantic import BaseModel
from fastapi import APIRouter

from ...app import IApplication
from ...models import SpanRecord


class SpanRecordResponse(BaseModel):
    """Response model for a stored span record."""

    span_id: str
    user_id: str
    start_time: int
    end_time: int
    is_current: bool


class RecentSpansResponse(BaseModel):
    """Response model for the recent span-id list."""

    current: str | None
    spanIds: list[str]


def _to_response(record: SpanRecord | None) -> dict | None:
    if record is None:
        return None
    return {
        "span_id": record.span_id,
        "user_id": record.user_id,
        "start_time": record.start_time,
        "end_time": record.end_time,
        "is_current": record.is_current,
    }


def create_spans_router(app: IApplication) -> APIRouter:
    """Create span records router."""
    router = APIRouter(prefix="/api/spans", tags=["spans"])

    @router.get("/recent", response_model=RecentSpansResponse)
    async def recent_spans() -> dict:
        """Recently emitted root span ids, newest first."""
        return {"current": app.registry.current(), "spanIds": app.registry.all()}

    @router.get("/recent/{span_id}/next")
    async def next_recent_span(span_id: str) -> dict:
        """The span id emitted right after `span_id`."""
        return {"spanId": app.registry.next_after(span_id)}

    @router.get("/{user_id}/current", response_model=SpanRecordResponse | None)
    async def current_span(user_id: str) -> dict | None:
        """The user's most recent span."""
        return _to_response(await app.storage.get_current_span(user_id))

    @router.get("/{user_id}/next", response_model=SpanRecordResponse | None)
    async def next_span(user_id: str) -> dict | None:
        """The first span starting after the user's current one ends."""
        return _to_response(await app.storage.get_next_span(user_id))

    @router.get("/{user_id}/all", response_model=list[SpanRecordResponse])
    async def all_spans(user_id: str) -> list[dict]:
        """All of the user's spans, oldest first."""
        return [_to_response(record) for record in await app.storage.get_all_spans(user_id)]

    return router
