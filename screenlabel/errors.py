"""Exceptions raised by providers and the router."""


class ScreenlabelError(Exception):
    """Base exception for screenlabel errors."""


class ProviderConfigurationError(ScreenlabelError):
    """Raised when the provider registry is misconfigured (e.g. duplicate ids)."""


class LLMError(ScreenlabelError):
    """Base exception for chat-completion failures."""


class LLMHTTPError(LLMError):
    """Raised when a chat-completion endpoint answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int, body: str):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class LLMTimeoutError(LLMError):
    """Raised when a chat-completion request exceeds its timeout."""

    def __init__(self, message: str, timeout_ms: int):
        super().__init__(message)
        self.timeout_ms = timeout_ms


class EmptyLLMResponseError(LLMError):
    """Raised when a response carries no message content."""


class NoJsonFoundError(LLMError):
    """Raised when a model reply contains no JSON object."""


class MissingApiKeyError(LLMError):
    """Raised when a cloud call is attempted without an API key."""
