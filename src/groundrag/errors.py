"""Exception hierarchy for the answering pipeline."""

from __future__ import annotations


class GroundRagError(Exception):
    """Base class for all groundrag errors."""


# ---------------------------------------------------------------------------
# Provider errors
# ---------------------------------------------------------------------------


class ProviderError(GroundRagError):
    """A provider call failed."""

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderTransientError(ProviderError):
    """Backend temporarily unavailable (503-class). Triggers immediate fallback."""


class ProviderPermanentError(ProviderError):
    """Bad credentials, unknown model, rate limit or malformed response."""


class ProvidersExhaustedError(GroundRagError):
    """Every provider used up its attempts for one operation."""

    def __init__(self, operation: str, attempts: dict[str, int], last_error: Exception | None = None):
        self.operation = operation
        self.attempts = dict(attempts)
        self.last_error = last_error
        total = sum(self.attempts.values())
        per_provider = ", ".join(f"{name}={count}" for name, count in self.attempts.items())
        super().__init__(
            f"All providers exhausted for '{operation}' after {total} attempts "
            f"({per_provider or 'no providers configured'})"
        )


class UnknownProviderError(GroundRagError, ValueError):
    """Provider name is not registered with the coordinator."""


# ---------------------------------------------------------------------------
# Retrieval errors
# ---------------------------------------------------------------------------


class IndexUnavailableError(GroundRagError):
    """The vector index could not be reached or the query call failed."""


class InvalidQueryVectorError(GroundRagError, ValueError):
    """Query vector or result count is malformed."""
