"""Application bootstrap and lifecycle management."""

from typing import Protocol

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SpanExporter

from .config import RelayConfig
from .engine import DebugParameterExtractor, SpanSynthesizer, TraceEventClassifier
from .feedback import AnnotationClient, IAnnotationClient
from .logging_config import get_logger
from .registry import ISpanRegistry, SpanRegistry
from .relay import DialogueEngineClient, IInteractionRelay, InteractionRelay
from .sink import OTelTraceSink, create_tracer_provider
from .sink.otel_sink import TRACER_NAME
from .storage import IStorage, Storage
from .transcript import TranscriptLogger
from .worker import ITraceWorker, TraceWorker

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap, lifecycle and component access."""

    @property
    def config(self) -> RelayConfig: ...

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    @property
    def storage(self) -> IStorage: ...

    @property
    def relay(self) -> IInteractionRelay: ...

    @property
    def worker(self) -> ITraceWorker: ...

    @property
    def registry(self) -> ISpanRegistry: ...

    @property
    def annotations(self) -> IAnnotationClient: ...

    @property
    def transcripts(self) -> TranscriptLogger: ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        config: RelayConfig | None = None,
        span_exporter: SpanExporter | None = None,
        engine_transport=None,
        annotation_transport=None,
    ):
        self._config = config or RelayConfig.from_env()
        # Test hooks: replace the OTLP exporter / outbound HTTP transports.
        self._span_exporter = span_exporter
        self._engine_transport = engine_transport
        self._annotation_transport = annotation_transport

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._tracer_provider: TracerProvider | None = None
        self._sink: OTelTraceSink | None = None
        self._registry: SpanRegistry | None = None
        self._worker: TraceWorker | None = None
        self._engine: DialogueEngineClient | None = None
        self._relay: InteractionRelay | None = None
        self._annotations: AnnotationClient | None = None
        self._transcripts: TranscriptLogger | None = None

    @property
    def config(self) -> RelayConfig:
        return self._config

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._config.db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Tracing sink
        self._tracer_provider = create_tracer_provider(self._config, self._span_exporter)
        self._sink = OTelTraceSink(self._tracer_provider.get_tracer(TRACER_NAME))
        logger.info(
            "Tracing sink initialized",
            extra={"context": {"project": self._config.project_name}},
        )

        # 3. Span-id registry
        self._registry = SpanRegistry(self._config.span_registry_size)

        # 4. Trace worker (depends on sink, registry, storage)
        extractor = DebugParameterExtractor(self._config.token_regime)
        synthesizer = SpanSynthesizer(TraceEventClassifier(extractor))
        self._worker = TraceWorker(
            synthesizer=synthesizer,
            sink=self._sink,
            registry=self._registry,
            storage=self._storage,
            max_queue_size=self._config.trace_queue_size,
        )
        await self._worker.start()

        # 5. Dialogue engine client
        self._engine = DialogueEngineClient(
            self._config.engine_base_url,
            timeout=self._config.engine_timeout,
            transport=self._engine_transport,
        )

        # 6. Interaction relay (depends on engine client, worker)
        self._relay = InteractionRelay(self._engine, self._worker, self._config)

        # 7. Feedback and transcript logging
        self._annotations = AnnotationClient(
            self._config.phoenix_api_endpoint,
            api_key=self._config.phoenix_api_key,
            transport=self._annotation_transport,
        )
        self._transcripts = TranscriptLogger(self._sink)
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._worker:
            await self._worker.stop()
        if self._annotations:
            await self._annotations.aclose()
        if self._engine:
            await self._engine.aclose()
        if self._tracer_provider:
            self._tracer_provider.shutdown()
            logger.info("Tracer provider shut down")
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if self._storage is None:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def relay(self) -> InteractionRelay:
        """Get interaction relay instance."""
        if self._relay is None:
            raise RuntimeError("Application not started")
        return self._relay

    @property
    def worker(self) -> TraceWorker:
        """Get trace worker instance."""
        if self._worker is None:
            raise RuntimeError("Application not started")
        return self._worker

    @property
    def registry(self) -> SpanRegistry:
        """Get span-id registry instance."""
        if self._registry is None:
            raise RuntimeError("Application not started")
        return self._registry

    @property
    def annotations(self) -> AnnotationClient:
        """Get annotation client instance."""
        if self._annotations is None:
            raise RuntimeError("Application not started")
        return self._annotations

    @property
    def transcripts(self) -> TranscriptLogger:
        """Get transcript logger instance."""
        if self._transcripts is None:
            raise RuntimeError("Application not started")
        return self._transcripts
