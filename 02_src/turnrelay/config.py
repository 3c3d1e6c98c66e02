"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from .models import TokenRegime

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "spans.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env(*names: str, default: str | None = None) -> str | None:
    """First non-empty environment variable among `names`."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_token_regime(value: str | None) -> TokenRegime:
    """TOKEN_CONSUMPTION_TYPE: `voiceflow` reads post-multiplier figures, anything else raw."""
    if value and value.strip().lower() in ("voiceflow", "post_multiplier", "post-multiplier"):
        return TokenRegime.POST_MULTIPLIER
    return TokenRegime.RAW


@dataclass
class RelayConfig:
    """Runtime settings, read from the environment."""

    engine_domain: str = "general-runtime.voiceflow.com"
    engine_api_key: str | None = None
    engine_version_id: str = "development"
    engine_timeout: float = 30.0
    token_regime: TokenRegime = TokenRegime.RAW

    collector_endpoint: str = "http://localhost:6006/v1/traces"
    phoenix_api_key: str | None = None
    phoenix_api_endpoint: str = "http://localhost:6006"
    project_name: str = "Default Project"
    service_name: str = "turn-relay"
    console_spans: bool = False

    trace_queue_size: int = 256
    span_registry_size: int = 50

    environment: str = "development"
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    host: str = "0.0.0.0"
    port: int = 5252
    db_path: PathLike = DEFAULT_DB_PATH

    @property
    def engine_base_url(self) -> str:
        return f"https://{self.engine_domain}"

    @property
    def cors_origins(self) -> list[str]:
        """Configured origins in production, everything otherwise."""
        if self.environment == "production":
            return self.allowed_origins
        return ["*"]

    @classmethod
    def from_env(cls) -> "RelayConfig":
        """Build a config from environment variables, defaulting every field."""
        origins = _env("ALLOWED_ORIGINS", default="*")
        return cls(
            engine_domain=_env(
                "ENGINE_DOMAIN", "VOICEFLOW_DOMAIN", default=cls.engine_domain
            ),
            engine_api_key=_env("ENGINE_API_KEY", "VOICEFLOW_API_KEY"),
            engine_version_id=_env(
                "ENGINE_VERSION_ID", "VOICEFLOW_VERSION_ID", default=cls.engine_version_id
            ),
            engine_timeout=float(_env("ENGINE_TIMEOUT", default="30")),
            token_regime=parse_token_regime(_env("TOKEN_CONSUMPTION_TYPE")),
            collector_endpoint=_env("COLLECTOR_ENDPOINT", default=cls.collector_endpoint),
            phoenix_api_key=_env("PHOENIX_API_KEY"),
            phoenix_api_endpoint=_env(
                "PHOENIX_API_ENDPOINT", default=cls.phoenix_api_endpoint
            ),
            project_name=_env("PHOENIX_PROJECT_NAME", default=cls.project_name),
            console_spans=_env_bool("TRACE_CONSOLE"),
            trace_queue_size=int(_env("TRACE_QUEUE_SIZE", default="256")),
            span_registry_size=int(_env("SPAN_REGISTRY_SIZE", default="50")),
            environment=_env("APP_ENV", default=cls.environment),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
            host=_env("API_HOST", default=cls.host),
            port=int(_env("PORT", "API_PORT", default="5252")),
            db_path=resolve_db_path(_env("DATABASE_URL")),
        )
