"""Infrastructure layer exports."""

from .documentum import DocumentumEngineClient
from .engine import (
    ApplicationError,
    EngineError,
    ProcessEngineClient,
    TransportFailure,
    configure_engine_client,
    get_engine_client,
)
from .memory import InMemoryProcessEngine

__all__ = [
    "ApplicationError",
    "DocumentumEngineClient",
    "EngineError",
    "InMemoryProcessEngine",
    "ProcessEngineClient",
    "TransportFailure",
    "configure_engine_client",
    "get_engine_client",
]
