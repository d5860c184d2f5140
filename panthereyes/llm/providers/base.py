"""
HTTP LLM Provider Base — shared request/error handling for provider adapters.

Subclasses only describe the wire format (body, headers, response parsing).
The transport is an injectable async fetcher; `httpx_fetcher()` builds the
default one on httpx.AsyncClient.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Protocol

import httpx

from panthereyes.core.logging_context import LoggerLike
from panthereyes.llm.errors import LlmProviderError, classify_http_status
from panthereyes.models.llm_models import (
    LlmGenerateRequest,
    LlmGenerateResponse,
    LlmProviderId,
    ResolvedApiKey,
)

logger = logging.getLogger("panthereyes.llm.provider")

_TIMEOUT_PATTERN = re.compile(r"timeout|aborted|abort", re.IGNORECASE)


class HttpResponseLike(Protocol):
    status: int

    async def json(self) -> Any:
        ...

    async def text(self) -> str:
        ...


HttpFetcher = Callable[[str, str, dict[str, str], str, Optional[int]], Awaitable[HttpResponseLike]]


class _HttpxResponse:
    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self.status = response.status_code

    async def json(self) -> Any:
        return self._response.json()

    async def text(self) -> str:
        return self._response.text


def httpx_fetcher(client: httpx.AsyncClient | None = None) -> HttpFetcher:
    """Fetcher backed by httpx. A client created here lives per call."""

    async def fetch(
        url: str,
        method: str,
        headers: dict[str, str],
        body: str,
        timeout_ms: Optional[int],
    ) -> HttpResponseLike:
        timeout = timeout_ms / 1000 if timeout_ms else None
        if client is not None:
            response = await client.request(method, url, headers=headers, content=body, timeout=timeout)
            return _HttpxResponse(response)
        async with httpx.AsyncClient() as owned:
            response = await owned.request(method, url, headers=headers, content=body, timeout=timeout)
            return _HttpxResponse(response)

    return fetch


def drop_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


class BaseHttpLlmProvider(ABC):
    """
    One LLM vendor behind a POST-JSON endpoint.

    generate() raises LlmProviderError for every failure:
      - key_not_found / provider_not_implemented before any I/O (not retryable)
      - HTTP status errors via classify_http_status()
      - transport errors as timeout or network_error (retryable, cause kept)
    """

    def __init__(
        self,
        id: LlmProviderId,
        model: str,
        endpoint: str,
        fetcher: Optional[HttpFetcher] = None,
    ) -> None:
        self.id = id
        self.model = model
        self.endpoint = endpoint
        self.fetcher = fetcher

    async def generate(
        self,
        request: LlmGenerateRequest,
        resolved_key: ResolvedApiKey,
        timeout_ms: Optional[int] = None,
        log: Optional[LoggerLike] = None,
        request_id: Optional[str] = None,
    ) -> LlmGenerateResponse:
        log = log or logger
        if not resolved_key.key:
            raise LlmProviderError(
                "API key is missing for provider request.",
                provider=self.id,
                code="key_not_found",
                retryable=False,
            )
        if self.fetcher is None:
            raise LlmProviderError(
                f"{self.id} provider is configured but no HTTP fetcher is attached.",
                provider=self.id,
                code="provider_not_implemented",
                retryable=False,
            )

        body = json.dumps(self.build_request_body(request))
        log.debug(f"Calling {self.id} model={self.model} endpoint={self.endpoint}")

        try:
            response = await self.fetcher(
                self.endpoint,
                "POST",
                self.build_headers(resolved_key.key),
                body,
                timeout_ms,
            )
            if response.status < 200 or response.status >= 300:
                text = await response.text()
                raise classify_http_status(
                    self.id,
                    response.status,
                    f"{self.id} request failed with HTTP {response.status}: {text}",
                )
            data = await response.json()
        except LlmProviderError:
            raise
        except Exception as e:
            detail = f"{type(e).__name__}: {e}"
            raise LlmProviderError(
                f"{self.id} network request failed: {e}",
                provider=self.id,
                code="timeout" if _TIMEOUT_PATTERN.search(detail) else "network_error",
                retryable=True,
                cause=e,
            ) from e

        return self.parse_response(data)

    def list_field(self, payload: dict[str, Any], key: str) -> list[Any]:
        """Return `payload[key]` as a list (missing means empty); anything else is a bad response."""
        value = payload.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            raise LlmProviderError(
                f"{self.id} response field '{key}' must be a list, got {type(value).__name__}",
                provider=self.id,
                code="bad_response",
                retryable=False,
            )
        return value

    @abstractmethod
    def build_request_body(self, request: LlmGenerateRequest) -> dict[str, Any]:
        ...

    @abstractmethod
    def build_headers(self, api_key: str) -> dict[str, str]:
        ...

    @abstractmethod
    def parse_response(self, raw: Any) -> LlmGenerateResponse:
        ...
