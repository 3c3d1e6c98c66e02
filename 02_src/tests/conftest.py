"""Pytest configuration and fixtures."""

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

DEBUG_MESSAGE = (
    "__AI Set__\n"
    "Model: `gpt-4o-mini`\n"
    "Temperature: `0.7`\n"
    "Max Tokens: `256`\n"
    "Token Consumption: `{total: 65, query: 1, answer: 64}`\n"
    "Post-Multiplier Token Consumption: `{total: 130, query: 2, answer: 128}`\n"
    "Multiplier: `2`"
)


def at(seconds: float) -> datetime:
    """T0 shifted by `seconds`."""
    return T0 + timedelta(seconds=seconds)


def engine_trace() -> list[dict]:
    """A typical engine reply: an AI step, its answer and the end marker."""
    return [
        {"type": "debug", "payload": {"type": "api", "message": DEBUG_MESSAGE}},
        {"type": "text", "payload": {"message": "Hi there", "ai": True}},
        {"type": "end"},
    ]


class FakeEngine:
    """Stand-in for the dialogue engine behind an httpx.MockTransport."""

    def __init__(self):
        self.status = 200
        self.body = engine_trace()
        self.headers = {"cache-control": "no-store", "x-powered-by": "engine"}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body, headers=self.headers)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


class FakeAnnotations:
    """Stand-in for the span annotation API."""

    def __init__(self):
        self.status = 200
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json={"data": []})

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def config():
    """Relay config with in-memory storage and test credentials."""
    from turnrelay.config import RelayConfig

    return RelayConfig(
        engine_api_key="VF.DM.test-key",
        engine_version_id="production",
        phoenix_api_key="px-test-key",
        db_path=":memory:",
    )


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from turnrelay.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def span_exporter():
    """Collects finished spans in memory."""
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(config, span_exporter):
    """Tracer provider exporting synchronously to the in-memory exporter."""
    from turnrelay.sink import create_tracer_provider

    provider = create_tracer_provider(config, span_exporter)
    yield provider
    provider.shutdown()


@pytest.fixture
def sink(tracer_provider):
    """OpenTelemetry trace sink."""
    from turnrelay.sink import OTelTraceSink

    return OTelTraceSink(tracer_provider.get_tracer("tests"))


@pytest.fixture
def synthesizer():
    """Span synthesizer with the default (raw token) extractor."""
    from turnrelay.engine import SpanSynthesizer

    return SpanSynthesizer()


@pytest.fixture
def turn_request():
    """An api-mode text turn."""
    from turnrelay.models import TurnRequest

    return TurnRequest(user_id="user-1", action={"type": "text", "payload": "What is 2+2?"})


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def fake_annotations():
    return FakeAnnotations()


@pytest_asyncio.fixture
async def application(config, span_exporter, fake_engine, fake_annotations):
    """Started application wired to fake upstreams."""
    from turnrelay.app import Application

    app = Application(
        config=config,
        span_exporter=span_exporter,
        engine_transport=httpx.MockTransport(fake_engine),
        annotation_transport=httpx.MockTransport(fake_annotations),
    )
    await app.start()
    yield app
    await app.stop()
