"""
Exceptions raised by the processing core.

The pipeline catches all of them in a single place; only the fallback
resolver recovers locally, and only from `ProviderError`.
"""


class VoxlyError(Exception):
    pass


class InvalidInputError(VoxlyError):
    """Missing or malformed caller-supplied input. Never retried."""


class NotFoundError(VoxlyError):
    """The referenced job does not exist. Never retried."""


class EmptyTranscriptError(VoxlyError):
    """The speech backend answered but produced no usable text."""


class TranscriptionError(VoxlyError):
    def __init__(self, message: str, status_code: int = 502):
        self.status_code = status_code
        super().__init__(message)


class ProviderError(VoxlyError):
    """Failure of a single LLM backend request."""

    rate_limited = False

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        model: str | None = None,
        status_code: int | None = None,
        code: str | None = None,
    ):
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class RateLimitedError(ProviderError):
    rate_limited = True


class AllCandidatesExhaustedError(ProviderError):
    """
    Every fallback candidate failed. Only the error of the last candidate
    tried is kept, earlier ones are logged and discarded.
    """

    def __init__(self, last_error: Exception):
        self.last_error = last_error
        super().__init__(
            f"All LLM candidates failed, last error: {last_error}",
            provider=getattr(last_error, "provider", None),
            model=getattr(last_error, "model", None),
            status_code=getattr(last_error, "status_code", None),
            code=getattr(last_error, "code", None),
        )
        self.rate_limited = getattr(last_error, "rate_limited", False)
