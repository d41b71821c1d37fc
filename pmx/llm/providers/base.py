"""Base interface for LLM providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorClass(Enum):
    """Standardized error categories across all providers."""
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    RATE_LIMIT = "rate_limit"
    AUTH_ERROR = "auth_error"
    MODEL_NOT_FOUND = "model_not_found"
    INVALID_REQUEST = "invalid_request"
    CONTEXT_LENGTH_EXCEEDED = "context_length_exceeded"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


@dataclass
class ProviderError:
    """Standardized error representation.

    pmx never retries a failed request; the class is reported to the user so
    they can decide what to change.
    """
    error_class: ErrorClass
    message: str
    original_error: Optional[Exception] = None


# Keyword rules shared by providers, checked in order.
_ERROR_KEYWORDS = (
    (ErrorClass.TIMEOUT, ("timeout", "timed out")),
    (ErrorClass.NETWORK_ERROR, ("connection", "network", "unreachable", "refused")),
    (ErrorClass.RATE_LIMIT, ("rate limit", "429", "too many requests")),
    (ErrorClass.AUTH_ERROR, ("unauthorized", "401", "api key", "invalid_api_key", "authentication")),
    (ErrorClass.MODEL_NOT_FOUND, ("model not found", "does not exist", "404")),
    (ErrorClass.CONTEXT_LENGTH_EXCEEDED, ("context length", "context_length", "maximum context")),
    (ErrorClass.INVALID_REQUEST, ("400", "bad request", "invalid")),
    (ErrorClass.SERVER_ERROR, ("500", "502", "503", "504", "server error")),
)


def classify_error_message(error: Exception) -> ProviderError:
    """Classify an exception by its message text."""
    error_str = str(error).lower()
    for error_class, keywords in _ERROR_KEYWORDS:
        if any(keyword in error_str for keyword in keywords):
            return ProviderError(error_class=error_class, message=str(error), original_error=error)
    return ProviderError(error_class=ErrorClass.UNKNOWN, message=str(error), original_error=error)


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    ``chat`` returns ``{"message": {...}, "usage": {...}}`` on success and
    ``{"error": "..."}`` on failure; it does not raise for transport errors.
    """

    def __init__(self):
        """Initialize the provider."""
        self.name = "base"

    @abstractmethod
    def chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        model: Optional[str] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """Make a chat completion request.

        Args:
            messages: List of message dicts in OpenAI format
            tools: Optional list of tool definitions in OpenAI format
            model: Model name to use (provider-specific)
            **kwargs: Additional provider-specific parameters (e.g. temperature)

        Returns:
            Dict with 'message' and optional 'usage' keys, or an 'error' key
        """

    @abstractmethod
    def validate_config(self) -> bool:
        """Validate that the provider is configured correctly."""

    def classify_error(self, error: Exception) -> ProviderError:
        """Classify an error into a standard ErrorClass."""
        return classify_error_message(error)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
