"""Dialogue-engine relay that turns engine debug traces into OpenTelemetry spans."""

from .app import Application
from .config import RelayConfig

__all__ = ["Application", "RelayConfig"]

__version__ = "0.1.0"
