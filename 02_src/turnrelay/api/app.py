"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from ..app import Application
from .routes import feedback, interact, spans, trace

BANNER = "Dialogue Engine | Trace Relay Service"

CORS_HEADERS = [
    "Content-Type",
    "Authorization",
    "Accept",
    "versionid",
    "userid",
    "sessionid",
    "x-forwarded-for",
    "origin",
    "referer",
]


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    application = application or Application()

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        """Manage application lifespan."""
        await application.start()
        yield
        await application.stop()

    fastapi_app = FastAPI(
        title="Turn Relay API",
        description="Dialogue engine relay with trace synthesis",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.application = application

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=application.config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=CORS_HEADERS,
        expose_headers=["Content-Length", "Content-Type"],
    )

    @fastapi_app.get("/", response_class=PlainTextResponse)
    async def banner() -> str:
        return BANNER

    fastapi_app.include_router(interact.create_interact_router(application))
    fastapi_app.include_router(trace.create_trace_router(application))
    fastapi_app.include_router(feedback.create_feedback_router(application))
    fastapi_app.include_router(spans.create_spans_router(application))

    return fastapi_app
