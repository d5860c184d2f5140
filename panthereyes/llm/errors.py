"""
LLM Errors — provider failures with retry classification.
"""

from __future__ import annotations

from typing import Optional

from panthereyes.core.exceptions import PantherEyesError
from panthereyes.models.llm_models import LlmErrorCode, LlmRouteAttempt

RETRYABLE_CODES: frozenset[str] = frozenset(
    {"timeout", "rate_limit", "server_error", "network_error"}
)


class LlmProviderError(PantherEyesError):
    """A single provider call failed. `retryable` drives router fallback."""

    def __init__(
        self,
        message: str,
        *,
        code: LlmErrorCode,
        provider: str,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.provider = provider
        self.status_code = status_code
        self._retryable = retryable
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def retryable(self) -> bool:
        if self._retryable is not None:
            return self._retryable
        return self.code in RETRYABLE_CODES


class LlmRoutingExhaustedError(PantherEyesError):
    """No provider in the routing order produced a response."""

    def __init__(self, message: str, attempts: list[LlmRouteAttempt]) -> None:
        super().__init__(message)
        self.message = message
        self.attempts = attempts


def classify_http_status(provider: str, status_code: int, message: str) -> LlmProviderError:
    """Map a non-2xx HTTP status to a typed provider error."""
    if status_code in (401, 403):
        return LlmProviderError(
            message, provider=provider, code="auth_error", status_code=status_code, retryable=False
        )
    if status_code == 408:
        return LlmProviderError(
            message, provider=provider, code="timeout", status_code=status_code, retryable=True
        )
    if status_code == 429:
        return LlmProviderError(
            message, provider=provider, code="rate_limit", status_code=status_code, retryable=True
        )
    if status_code >= 500:
        return LlmProviderError(
            message, provider=provider, code="server_error", status_code=status_code, retryable=True
        )
    if status_code >= 400:
        return LlmProviderError(
            message, provider=provider, code="bad_request", status_code=status_code, retryable=False
        )
    return LlmProviderError(message, provider=provider, code="unknown", status_code=status_code)
