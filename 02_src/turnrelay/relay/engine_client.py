"""HTTP client for the dialogue engine."""

from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from ..errors import UpstreamFailure
from ..logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class EngineResponse:
    """A decoded dialogue-engine response."""

    status_code: int
    body: Any
    headers: dict[str, str] = field(default_factory=dict)


class IDialogueEngineClient(Protocol):
    """Access to the dialogue engine's HTTP API."""

    async def interact(
        self, path: str, body: dict[str, Any], headers: dict[str, str]
    ) -> EngineResponse:
        """POST an interaction. Raises UpstreamFailure unless it succeeded."""
        ...

    async def relay(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
        body: Any = None,
    ) -> EngineResponse:
        """Pass a request through unchanged."""
        ...

    async def aclose(self) -> None:
        """Close pooled connections."""
        ...


class DialogueEngineClient:
    """httpx-based dialogue engine client sharing one connection pool."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamFailure(f"Dialogue engine request timed out: {e!r}") from e
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"Dialogue engine unreachable: {e!r}") from e

    @staticmethod
    def _decode(response: httpx.Response) -> EngineResponse:
        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamFailure(
                "Dialogue engine returned a non-JSON body", response.status_code
            ) from e
        return EngineResponse(
            status_code=response.status_code,
            body=body,
            headers=dict(response.headers),
        )

    async def interact(
        self, path: str, body: dict[str, Any], headers: dict[str, str]
    ) -> EngineResponse:
        """POST an interaction. Raises UpstreamFailure unless it succeeded."""
        response = await self._send("POST", path, json=body, headers=headers)
        if not response.is_success:
            raise UpstreamFailure(
                f"Dialogue engine request failed with status {response.status_code}",
                response.status_code,
            )
        return self._decode(response)

    async def relay(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
        body: Any = None,
    ) -> EngineResponse:
        """Pass a request through unchanged."""
        kwargs: dict[str, Any] = {"headers": headers, "params": params}
        if method.upper() != "GET" and body is not None:
            kwargs["json"] = body
        response = await self._send(method.upper(), path, **kwargs)
        return self._decode(response)

    async def aclose(self) -> None:
        """Close pooled connections."""
        await self._client.aclose()
