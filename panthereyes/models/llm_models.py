"""
LLM Data Models — generation requests/responses, key resolution and routing.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import Field

from panthereyes.models.base import CamelModel

LlmProviderId = Literal["openai", "claude"]
LlmKeyScope = Literal["user", "project", "org"]
KeySource = Literal["memory", "env", "secret_storage", "vault", "custom"]

LlmErrorCode = Literal[
    "timeout",
    "rate_limit",
    "server_error",
    "network_error",
    "auth_error",
    "bad_request",
    "bad_response",
    "key_not_found",
    "provider_not_enabled",
    "provider_not_implemented",
    "unknown",
]

LlmAuditEventName = Literal[
    "llm.route.start",
    "llm.route.provider.skipped",
    "llm.route.provider.attempt",
    "llm.route.provider.success",
    "llm.route.provider.failure",
    "llm.route.provider.fallback",
    "llm.route.exhausted",
]


class LlmGenerateRequest(CamelModel):
    prompt: str
    system_prompt: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    metadata: Optional[dict[str, str]] = None


class LlmUsage(CamelModel):
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


class LlmGenerateResponse(CamelModel):
    provider: LlmProviderId
    model: str
    content: str
    usage: Optional[LlmUsage] = None
    raw: Any = None


class ResolvedApiKey(CamelModel):
    """A key found for (provider, scope). The raw key is excluded from repr."""

    provider: LlmProviderId
    scope: LlmKeyScope
    key: str = Field(..., repr=False)
    source: KeySource
    key_id: Optional[str] = None


class KeyResolutionRequest(CamelModel):
    provider: LlmProviderId
    scopes: list[LlmKeyScope]
    user_id: Optional[str] = None
    project_id: Optional[str] = None
    org_id: Optional[str] = None

    def scope_id(self, scope: LlmKeyScope) -> Optional[str]:
        if scope == "user":
            return self.user_id
        if scope == "project":
            return self.project_id
        return self.org_id


class LlmRoutingPolicy(CamelModel):
    primary: LlmProviderId
    fallback_order: list[LlmProviderId] = Field(default_factory=list)
    timeout_ms: Optional[int] = None
    key_scopes: list[LlmKeyScope] = Field(default_factory=list)

    @property
    def order(self) -> list[LlmProviderId]:
        """Primary first, then the fallback order with the primary removed."""
        return [self.primary, *(p for p in self.fallback_order if p != self.primary)]


class KeyContext(CamelModel):
    user_id: Optional[str] = None
    project_id: Optional[str] = None
    org_id: Optional[str] = None


class LlmRouteRequest(CamelModel):
    request: LlmGenerateRequest
    routing: LlmRoutingPolicy
    request_id: Optional[str] = None
    key_context: Optional[KeyContext] = None


class LlmRouteAttempt(CamelModel):
    provider: str
    code: LlmErrorCode
    message: str
    status_code: Optional[int] = None


class LlmAuditEvent(CamelModel):
    ts: str
    event: LlmAuditEventName
    request_id: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
