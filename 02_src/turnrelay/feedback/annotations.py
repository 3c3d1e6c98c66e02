"""Span annotation (feedback) client."""

from typing import Any, Protocol

import httpx

from ..errors import AnnotationDeliveryError, InvalidTurnRequest
from ..logging_config import get_logger

logger = get_logger(__name__)

SPAN_ANNOTATIONS_PATH = "/v1/span_annotations"


def vote_annotation(span_id: str, score: int) -> dict[str, Any]:
    """A thumbs-up/down annotation from an end user."""
    negative = score == -1
    return {
        "span_id": span_id,
        "annotator_kind": "HUMAN",
        "name": "vote",
        "result": {
            "label": "👎" if negative else "👍",
            "score": score,
            "explanation": (
                "Negative feedback from user" if negative else "Positive feedback from user"
            ),
        },
    }


def parse_vote_score(score: Any) -> int:
    """Accept only 1 and -1 (as numbers or strings)."""
    if str(score).strip() not in ("1", "-1"):
        raise InvalidTurnRequest("Invalid spanId or score")
    return int(str(score).strip())


class IAnnotationClient(Protocol):
    """Submits span annotations to the trace backend."""

    async def submit(self, data: Any, authorization: str | None = None) -> None:
        """Forward caller-built annotations."""
        ...

    async def submit_vote(self, span_id: str, score: Any) -> None:
        """Record a user vote on a span."""
        ...


class AnnotationClient:
    """httpx client for the backend's span annotation endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def _post(self, data: Any, authorization: str | None) -> None:
        headers = {"Content-Type": "application/json", "accept": "application/json"}
        if authorization:
            headers["Authorization"] = authorization
        try:
            response = await self._client.post(
                SPAN_ANNOTATIONS_PATH, json={"data": data}, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error("Annotation API unreachable: %s", e)
            raise AnnotationDeliveryError(None) from e

        if response.status_code != 200:
            logger.error(
                "Annotation API rejected feedback",
                extra={"context": {"status": response.status_code}},
            )
            raise AnnotationDeliveryError(response.status_code)

    async def submit(self, data: Any, authorization: str | None = None) -> None:
        """Forward caller-built annotations, with the caller's credentials."""
        await self._post(data, authorization)

    async def submit_vote(self, span_id: str, score: Any) -> None:
        """Record a user vote on a span, with the configured credentials."""
        if not span_id:
            raise InvalidTurnRequest("Invalid spanId or score")
        value = parse_vote_score(score)
        authorization = f"Bearer {self._api_key}" if self._api_key else None
        await self._post([vote_annotation(span_id, value)], authorization)

    async def aclose(self) -> None:
        await self._client.aclose()
