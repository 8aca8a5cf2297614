"""Exception hierarchy shared by provider clients and the chat turn."""

from __future__ import annotations


class JudgiAgentError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(JudgiAgentError):
    """Raised when a required setting such as an API key is missing."""


class RateLimitSignal(JudgiAgentError):
    """Internal control signal raised on HTTP 429; triggers key rotation."""

    def __init__(self, provider: str, message: str = "rate limited") -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ExhaustedRetriesError(JudgiAgentError):
    """Every configured key was tried and the provider is still rate limiting."""

    def __init__(self, service: str, attempts: int) -> None:
        super().__init__(
            f"All {service} API keys exhausted after {attempts} attempt(s). "
            "Please try again later."
        )
        self.service = service
        self.attempts = attempts


class ProviderError(JudgiAgentError):
    """Non-retryable failure reported by (or while talking to) a provider."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(f"{provider} error: {message}")
        self.provider = provider
        self.status_code = status_code


class TranscriptionFailedError(JudgiAgentError):
    """The transcription job finished with a terminal `error` status."""

    def __init__(self, message: str, *, transcript_id: str | None = None) -> None:
        super().__init__(f"Transcription failed: {message}")
        self.provider_message = message
        self.transcript_id = transcript_id
