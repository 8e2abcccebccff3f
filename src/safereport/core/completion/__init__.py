from .errors import (
    CompletionError,
    ConfigurationError,
    MalformedResponseError,
    TransportError,
)
from .models import CompletionEnvelope, CompletionMode, CompletionRequest
from .service import CompletionService, LLMCompletionService

__all__ = [
    "CompletionEnvelope",
    "CompletionError",
    "CompletionMode",
    "CompletionRequest",
    "CompletionService",
    "ConfigurationError",
    "LLMCompletionService",
    "MalformedResponseError",
    "TransportError",
]
