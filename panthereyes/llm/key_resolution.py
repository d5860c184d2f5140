"""
Key Resolution — find an API key for a provider across ordered scopes.

Resolvers are async so secret stores backed by I/O can implement the same
interface. A resolver never raises for a missing key; it returns None.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Optional, Protocol

from pydantic import BaseModel, Field

from panthereyes.models.llm_models import (
    KeyResolutionRequest,
    KeySource,
    LlmKeyScope,
    LlmProviderId,
    ResolvedApiKey,
)

PROVIDER_KEY_ENV_NAMES: dict[str, str] = {
    "openai": "PANTHEREYES_OPENAI_API_KEY",
    "claude": "PANTHEREYES_ANTHROPIC_API_KEY",
}


class ScopedKeyRecord(BaseModel):
    provider: LlmProviderId
    scope: LlmKeyScope
    scope_id: Optional[str] = None
    key: str = Field(..., repr=False)
    key_id: Optional[str] = None
    source: Optional[KeySource] = None


class KeyResolutionService(ABC):
    @abstractmethod
    async def resolve_key(self, request: KeyResolutionRequest) -> Optional[ResolvedApiKey]:
        ...


class CompositeKeyResolutionService(KeyResolutionService):
    """First non-None result from the delegates, in order."""

    def __init__(self, delegates: list[KeyResolutionService]) -> None:
        self.delegates = list(delegates)

    async def resolve_key(self, request: KeyResolutionRequest) -> Optional[ResolvedApiKey]:
        for delegate in self.delegates:
            resolved = await delegate.resolve_key(request)
            if resolved is not None:
                return resolved
        return None


class InMemoryKeyResolutionService(KeyResolutionService):
    """
    Static records matched on (provider, scope, scope_id).

    The scope id must match exactly: a record without `scope_id` only
    matches a request that carries no id for that scope.
    """

    def __init__(self, records: list[ScopedKeyRecord]) -> None:
        self.records = list(records)

    async def resolve_key(self, request: KeyResolutionRequest) -> Optional[ResolvedApiKey]:
        for scope in request.scopes:
            scope_id = request.scope_id(scope)
            for record in self.records:
                if (
                    record.provider == request.provider
                    and record.scope == scope
                    and record.scope_id == scope_id
                ):
                    return ResolvedApiKey(
                        provider=record.provider,
                        scope=record.scope,
                        key=record.key,
                        key_id=record.key_id,
                        source=record.source or "memory",
                    )
        return None


class EnvironmentKeyResolutionService(KeyResolutionService):
    """
    Reads provider keys from an explicit environment mapping.

    The key is reported under the first requested scope; the key id only
    reveals that the variable is present.
    """

    def __init__(self, env: Mapping[str, str]) -> None:
        self.env = env

    async def resolve_key(self, request: KeyResolutionRequest) -> Optional[ResolvedApiKey]:
        env_name = PROVIDER_KEY_ENV_NAMES[request.provider]
        key = self.env.get(env_name)
        if not key or not request.scopes:
            return None

        return ResolvedApiKey(
            provider=request.provider,
            scope=request.scopes[0],
            key=key,
            source="env",
            key_id=f"{env_name.lower()}:present",
        )


class ExternalScopedKeyStore(Protocol):
    async def get_key(
        self, provider: LlmProviderId, scope: LlmKeyScope, scope_id: Optional[str]
    ) -> Optional[str]:
        ...


class SecretStorageCompatibleKeyResolutionService(KeyResolutionService):
    """Adapter over an external secret store queried once per scope."""

    def __init__(self, store: ExternalScopedKeyStore) -> None:
        self.store = store

    async def resolve_key(self, request: KeyResolutionRequest) -> Optional[ResolvedApiKey]:
        for scope in request.scopes:
            scope_id = request.scope_id(scope)
            key = await self.store.get_key(request.provider, scope, scope_id)
            if not key:
                continue
            return ResolvedApiKey(
                provider=request.provider,
                scope=scope,
                key=key,
                source="secret_storage",
                key_id=f"{request.provider}:{scope}:{scope_id or 'default'}",
            )
        return None
