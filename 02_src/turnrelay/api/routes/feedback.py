"""Feedback API routes."""

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import JSONResponse

from ...app import IApplication
from ...errors import AnnotationDeliveryError, InvalidTurnRequest
from .common import error_response


def create_feedback_router(app: IApplication) -> APIRouter:
    """Create feedback router."""
    router = APIRouter(prefix="/api", tags=["feedback"])

    @router.post("/feedback")
    async def feedback(request: Request):
        """Forward caller-built span annotations to the trace backend."""
        try:
            data = await request.json()
        except ValueError:
            return error_response(400, "request body must be JSON")
        try:
            await app.annotations.submit(data, request.headers.get("authorization"))
        except AnnotationDeliveryError as e:
            return error_response(500, str(e))
        return Response(status_code=200)

    @router.api_route("/formfeedback", methods=["GET", "POST"])
    async def form_feedback(
        span_id: str | None = Query(None, alias="spanId"),
        score: str | None = Query(None),
    ):
        """Record a thumbs-up (1) or thumbs-down (-1) vote on a span."""
        try:
            await app.annotations.submit_vote(span_id or "", score)
        except InvalidTurnRequest as e:
            return error_response(400, str(e))
        except AnnotationDeliveryError as e:
            return error_response(500, str(e))
        return JSONResponse({"message": "Feedback received"})

    return router
