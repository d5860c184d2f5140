"""
LLM Router — provider selection with scoped key resolution and fallback.

For each provider in `routing.order` (primary first):

    not registered        -> skipped (provider_not_enabled), next
    no key resolved       -> skipped (key_not_found), next
    generate() succeeds   -> return
    generate() fails      -> fallback to the next provider only if the error
                             is retryable and one remains; otherwise stop

Skips never terminate routing. Every transition emits an audit event; raw
keys never appear in events.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Optional, Protocol

from panthereyes.audit.logger import LlmAuditSink, LoggerLlmAuditSink
from panthereyes.core.logging_context import LoggerLike, bind_logger
from panthereyes.llm.errors import LlmProviderError, LlmRoutingExhaustedError
from panthereyes.llm.key_resolution import KeyResolutionService
from panthereyes.models.llm_models import (
    KeyContext,
    KeyResolutionRequest,
    LlmAuditEvent,
    LlmGenerateRequest,
    LlmGenerateResponse,
    LlmRouteAttempt,
    LlmRouteRequest,
    ResolvedApiKey,
)

EXHAUSTED_MESSAGE = "No LLM provider could fulfill the request."


class LlmProvider(Protocol):
    id: str
    model: str

    async def generate(
        self,
        request: LlmGenerateRequest,
        resolved_key: ResolvedApiKey,
        timeout_ms: Optional[int] = None,
        log: Optional[LoggerLike] = None,
        request_id: Optional[str] = None,
    ) -> LlmGenerateResponse:
        ...


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z")


def should_fallback(error: LlmProviderError) -> bool:
    return error.retryable


class LlmRouter:
    def __init__(
        self,
        providers: list[LlmProvider],
        key_resolution: KeyResolutionService,
        logger: Optional[LoggerLike] = None,
        audit_sink: Optional[LlmAuditSink] = None,
    ) -> None:
        self.providers: dict[str, LlmProvider] = {p.id: p for p in providers}
        self.key_resolution = key_resolution
        self.logger = logger or logging.getLogger("panthereyes.llm.router")
        self.audit_sink = audit_sink or LoggerLlmAuditSink(bind_logger(self.logger, subsystem="llm"))

    def _emit(self, event: str, route: LlmRouteRequest, **fields) -> None:
        self.audit_sink.emit(
            LlmAuditEvent(ts=_now_iso(), event=event, request_id=route.request_id, **fields)
        )

    async def generate(self, route: LlmRouteRequest) -> LlmGenerateResponse:
        """
        Route one generation request.

        Raises:
            LlmRoutingExhaustedError: every candidate was skipped or failed,
                or a non-retryable failure stopped routing. `attempts` lists
                each skip/failure in order.
        """
        order = route.routing.order
        key_context = route.key_context or KeyContext()
        attempts: list[LlmRouteAttempt] = []

        self._emit(
            "llm.route.start",
            route,
            metadata={"order": order, "keyScopes": route.routing.key_scopes},
        )

        for index, provider_id in enumerate(order):
            provider = self.providers.get(provider_id)
            if provider is None:
                self._emit(
                    "llm.route.provider.skipped",
                    route,
                    provider=provider_id,
                    metadata={"reason": "provider_not_enabled"},
                )
                attempts.append(LlmRouteAttempt(
                    provider=provider_id, code="provider_not_enabled", message="Provider not configured"
                ))
                continue

            resolved_key = await self.key_resolution.resolve_key(KeyResolutionRequest(
                provider=provider_id,
                scopes=route.routing.key_scopes,
                user_id=key_context.user_id,
                project_id=key_context.project_id,
                org_id=key_context.org_id,
            ))
            if resolved_key is None:
                self._emit(
                    "llm.route.provider.skipped",
                    route,
                    provider=provider_id,
                    metadata={"reason": "key_not_found"},
                )
                attempts.append(LlmRouteAttempt(
                    provider=provider_id, code="key_not_found", message="No key resolved for provider"
                ))
                continue

            self._emit(
                "llm.route.provider.attempt",
                route,
                provider=provider_id,
                model=provider.model,
                metadata={
                    "scope": resolved_key.scope,
                    "source": resolved_key.source,
                    "keyId": resolved_key.key_id,
                    "attemptIndex": index,
                },
            )

            try:
                response = await provider.generate(
                    route.request,
                    resolved_key,
                    timeout_ms=route.routing.timeout_ms,
                    log=bind_logger(self.logger, request_id=route.request_id, provider=provider_id),
                    request_id=route.request_id,
                )
            except Exception as e:
                if isinstance(e, LlmProviderError):
                    error = e
                else:
                    error = LlmProviderError(
                        str(e), provider=provider_id, code="unknown", retryable=False, cause=e
                    )

                attempts.append(LlmRouteAttempt(
                    provider=provider_id,
                    code=error.code,
                    message=error.message,
                    status_code=error.status_code,
                ))
                self._emit(
                    "llm.route.provider.failure",
                    route,
                    provider=provider_id,
                    model=provider.model,
                    metadata={
                        "code": error.code,
                        "retryable": error.retryable,
                        "statusCode": error.status_code,
                    },
                )

                has_fallback = index < len(order) - 1
                if has_fallback and should_fallback(error):
                    self._emit(
                        "llm.route.provider.fallback",
                        route,
                        provider=provider_id,
                        model=provider.model,
                        metadata={"reason": error.code, "nextProvider": order[index + 1]},
                    )
                    continue

                self.logger.warning(
                    f"LLM routing stopped at {provider_id}: {error.code} (retryable={error.retryable})"
                )
                raise LlmRoutingExhaustedError(EXHAUSTED_MESSAGE, attempts) from e

            self._emit(
                "llm.route.provider.success",
                route,
                provider=provider_id,
                model=provider.model,
                metadata={"scope": resolved_key.scope, "source": resolved_key.source},
            )
            return response

        self._emit(
            "llm.route.exhausted",
            route,
            metadata={"attempts": [a.to_wire() for a in attempts]},
        )
        raise LlmRoutingExhaustedError(EXHAUSTED_MESSAGE, attempts)
