"""Relay-wide exception hierarchy."""


class RelayError(Exception):
    """Base exception for all relay errors."""
    pass


class UpstreamFailure(RelayError):
    """The dialogue engine failed or could not be reached."""
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class InvalidTurnRequest(RelayError):
    """The inbound request is missing something the relay needs."""
    pass


class AnnotationDeliveryError(RelayError):
    """The annotation API rejected a feedback submission."""
    def __init__(self, status_code: int | None, message: str = "Failed to send feedback"):
        self.status_code = status_code
        super().__init__(message)


class SinkTransmissionFailure(RelayError):
    """Spans could not be handed to the tracing backend. Logged, never surfaced."""
    pass
