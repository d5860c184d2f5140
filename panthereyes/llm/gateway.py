"""
LLM Gateway — chat-model adapters used by planners.

Planners only see `ChatModelAdapter.generate(prompt) -> str`. With the LLM
disabled the no-op adapter is wired in and deterministic planners skip any
augmentation step.
"""

from __future__ import annotations

import logging
from typing import Literal, Optional, Protocol

from panthereyes.audit.logger import (
    FanOutLlmAuditSink,
    JsonLinesLlmAuditSink,
    LlmAuditSink,
    LoggerLlmAuditSink,
)
from panthereyes.config import Settings
from panthereyes.llm.key_resolution import (
    CompositeKeyResolutionService,
    EnvironmentKeyResolutionService,
    InMemoryKeyResolutionService,
    KeyResolutionService,
)
from panthereyes.llm.providers.base import HttpFetcher, httpx_fetcher
from panthereyes.llm.providers.claude import ClaudeLlmProvider
from panthereyes.llm.providers.openai import OpenAiLlmProvider
from panthereyes.llm.router import LlmRouter
from panthereyes.models.llm_models import (
    LlmGenerateRequest,
    LlmKeyScope,
    LlmProviderId,
    LlmRouteRequest,
    LlmRoutingPolicy,
)

logger = logging.getLogger("panthereyes.llm")

ChatProvider = Literal["openai", "claude", "none", "router"]


class ChatModelAdapter(Protocol):
    provider: ChatProvider

    async def generate(self, prompt: str) -> str:
        ...


class NoopChatModelAdapter:
    provider: ChatProvider = "none"

    async def generate(self, prompt: str) -> str:
        raise RuntimeError("No LLM adapter configured. Deterministic planners are active.")


class RoutedChatModelAdapter:
    """Sends each prompt through the router with a fixed routing policy."""

    provider: ChatProvider = "router"

    def __init__(
        self,
        router: LlmRouter,
        primary: LlmProviderId = "openai",
        fallback: Optional[list[LlmProviderId]] = None,
        timeout_ms: int = 10_000,
        key_scopes: Optional[list[LlmKeyScope]] = None,
    ) -> None:
        self.router = router
        self.routing = LlmRoutingPolicy(
            primary=primary,
            fallback_order=fallback if fallback is not None else ["claude"],
            timeout_ms=timeout_ms,
            key_scopes=key_scopes if key_scopes is not None else ["user", "project", "org"],
        )

    async def generate(self, prompt: str) -> str:
        result = await self.router.generate(LlmRouteRequest(
            request=LlmGenerateRequest(prompt=prompt, temperature=0),
            routing=self.routing,
        ))
        return result.content


def create_default_llm_router(
    settings: Settings,
    key_resolution: Optional[KeyResolutionService] = None,
    audit_sink: Optional[LlmAuditSink] = None,
    fetcher: Optional[HttpFetcher] = None,
) -> LlmRouter:
    """
    Router with both providers on the httpx transport.

    Keys come from `key_resolution`, or by default from an (empty) in-memory
    store followed by the provider keys in `settings`.
    """
    resolver = key_resolution or CompositeKeyResolutionService([
        InMemoryKeyResolutionService([]),
        EnvironmentKeyResolutionService(settings.provider_key_env()),
    ])

    if audit_sink is None:
        sinks: list[LlmAuditSink] = [LoggerLlmAuditSink(logging.getLogger("panthereyes.llm.audit"))]
        if settings.audit_log_path:
            sinks.append(JsonLinesLlmAuditSink(settings.audit_log_path))
        audit_sink = FanOutLlmAuditSink(sinks)

    transport = fetcher or httpx_fetcher()
    return LlmRouter(
        providers=[
            OpenAiLlmProvider(
                model=settings.openai_model,
                endpoint=settings.openai_endpoint,
                fetcher=transport,
            ),
            ClaudeLlmProvider(
                model=settings.claude_model,
                endpoint=settings.claude_endpoint,
                fetcher=transport,
                anthropic_version=settings.anthropic_version,
            ),
        ],
        key_resolution=resolver,
        logger=logging.getLogger("panthereyes.llm.router"),
        audit_sink=audit_sink,
    )


def create_chat_model(settings: Settings) -> ChatModelAdapter:
    """Chat model for planners: routed when enabled, no-op otherwise."""
    if not settings.llm_enabled:
        logger.info("LLM disabled, deterministic planners only")
        return NoopChatModelAdapter()

    return RoutedChatModelAdapter(
        create_default_llm_router(settings),
        primary=settings.llm_primary_provider,
        fallback=list(settings.llm_fallback_order),
        timeout_ms=settings.llm_timeout_ms,
        key_scopes=list(settings.llm_key_scopes),
    )
