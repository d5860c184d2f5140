"""
Tests for LLM Router — key resolution, provider adapters, fallback and audit events.
"""

import asyncio
import json
import logging

import httpx
import pytest

from panthereyes.audit.logger import (
    REDACTED,
    InMemoryLlmAuditSink,
    JsonLinesLlmAuditSink,
    LoggerLlmAuditSink,
    redact_metadata,
)
from panthereyes.config import Settings
from panthereyes.llm.errors import LlmProviderError, LlmRoutingExhaustedError, classify_http_status
from panthereyes.llm.gateway import (
    NoopChatModelAdapter,
    RoutedChatModelAdapter,
    create_chat_model,
    create_default_llm_router,
)
from panthereyes.llm.key_resolution import (
    CompositeKeyResolutionService,
    EnvironmentKeyResolutionService,
    InMemoryKeyResolutionService,
    ScopedKeyRecord,
    SecretStorageCompatibleKeyResolutionService,
)
from panthereyes.llm.providers.claude import ClaudeLlmProvider
from panthereyes.llm.providers.openai import OpenAiLlmProvider
from panthereyes.llm.router import LlmRouter
from panthereyes.models.llm_models import (
    KeyContext,
    KeyResolutionRequest,
    LlmAuditEvent,
    LlmGenerateRequest,
    LlmRouteRequest,
    LlmRoutingPolicy,
    ResolvedApiKey,
)


class FakeResponse:
    def __init__(self, status, payload):
        self.status = status
        self._payload = payload

    async def json(self):
        return self._payload

    async def text(self):
        return json.dumps(self._payload)


class RecordingFetcher:
    """Returns queued responses (or raises queued exceptions) and records calls."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def __call__(self, url, method, headers, body, timeout_ms):
        self.calls.append({"url": url, "method": method, "headers": headers, "body": json.loads(body)})
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


OPENAI_OK = FakeResponse(200, {"output_text": "openai says hi", "usage": {"input_tokens": 3, "output_tokens": 4}})
CLAUDE_OK = FakeResponse(200, {"content": [{"type": "text", "text": "claude"}, {"type": "text", "text": "says hi"}]})


def _key(provider="openai"):
    return ResolvedApiKey(provider=provider, scope="user", key="sk-test-123", source="memory")


def _route(primary="openai", fallback=("claude",), **extra):
    return LlmRouteRequest(
        request=LlmGenerateRequest(prompt="hello"),
        routing=LlmRoutingPolicy(
            primary=primary,
            fallback_order=list(fallback),
            timeout_ms=1000,
            key_scopes=["user", "project", "org"],
        ),
        request_id="req-1",
        **extra,
    )


def _env_keys(openai=True, claude=True):
    env = {}
    if openai:
        env["PANTHEREYES_OPENAI_API_KEY"] = "sk-openai"
    if claude:
        env["PANTHEREYES_ANTHROPIC_API_KEY"] = "sk-claude"
    return EnvironmentKeyResolutionService(env)


# -- Key resolution -----------------------------------------------------------


def test_in_memory_resolution_respects_scope_order():
    service = InMemoryKeyResolutionService([
        ScopedKeyRecord(provider="openai", scope="org", scope_id="acme", key="org-key"),
        ScopedKeyRecord(provider="openai", scope="project", scope_id="p1", key="project-key"),
    ])
    request = KeyResolutionRequest(
        provider="openai", scopes=["user", "project", "org"], project_id="p1", org_id="acme"
    )

    resolved = asyncio.run(service.resolve_key(request))
    assert resolved.key == "project-key"
    assert resolved.scope == "project"
    assert resolved.source == "memory"


def test_in_memory_resolution_requires_exact_scope_id():
    service = InMemoryKeyResolutionService([
        ScopedKeyRecord(provider="openai", scope="user", scope_id="alice", key="k"),
    ])
    request = KeyResolutionRequest(provider="openai", scopes=["user"], user_id="bob")
    assert asyncio.run(service.resolve_key(request)) is None


def test_environment_resolution_reports_first_scope():
    request = KeyResolutionRequest(provider="claude", scopes=["project", "org"])
    resolved = asyncio.run(_env_keys().resolve_key(request))

    assert resolved.key == "sk-claude"
    assert resolved.scope == "project"
    assert resolved.source == "env"
    assert resolved.key_id == "panthereyes_anthropic_api_key:present"


def test_composite_resolution_uses_first_hit():
    composite = CompositeKeyResolutionService([InMemoryKeyResolutionService([]), _env_keys()])
    request = KeyResolutionRequest(provider="openai", scopes=["user"])
    assert asyncio.run(composite.resolve_key(request)).key == "sk-openai"


def test_secret_storage_resolution_queries_each_scope():
    class Store:
        def __init__(self):
            self.queries = []

        async def get_key(self, provider, scope, scope_id):
            self.queries.append((provider, scope, scope_id))
            return "vault-key" if scope == "org" else None

    store = Store()
    service = SecretStorageCompatibleKeyResolutionService(store)
    request = KeyResolutionRequest(provider="openai", scopes=["user", "org"], user_id="u1")

    resolved = asyncio.run(service.resolve_key(request))
    assert resolved.key == "vault-key"
    assert resolved.key_id == "openai:org:default"
    assert store.queries == [("openai", "user", "u1"), ("openai", "org", None)]


def test_resolved_key_is_hidden_from_repr():
    assert "sk-test-123" not in repr(_key())


# -- Providers ---------------------------------------------------------------


def test_openai_request_shape_and_parsing():
    fetcher = RecordingFetcher(OPENAI_OK)
    provider = OpenAiLlmProvider(model="gpt-test", fetcher=fetcher)
    request = LlmGenerateRequest(prompt="hi", system_prompt="be brief", temperature=0)

    response = asyncio.run(provider.generate(request, _key()))

    call = fetcher.calls[0]
    assert call["method"] == "POST"
    assert call["headers"]["authorization"] == "Bearer sk-test-123"
    assert call["body"]["model"] == "gpt-test"
    assert call["body"]["input"][0] == {"role": "system", "content": "be brief"}
    assert "max_output_tokens" not in call["body"]
    assert response.content == "openai says hi"
    assert response.usage.input_tokens == 3


def test_openai_parses_output_blocks_without_output_text():
    payload = {"output": [{"content": [{"type": "output_text", "text": "a"}, {"type": "output_text", "text": "b"}]}]}
    provider = OpenAiLlmProvider(fetcher=RecordingFetcher(FakeResponse(200, payload)))
    response = asyncio.run(provider.generate(LlmGenerateRequest(prompt="x"), _key()))
    assert response.content == "ab"


def test_claude_request_shape_and_parsing():
    fetcher = RecordingFetcher(CLAUDE_OK)
    provider = ClaudeLlmProvider(fetcher=fetcher)

    response = asyncio.run(provider.generate(LlmGenerateRequest(prompt="hi"), _key("claude")))

    call = fetcher.calls[0]
    assert call["headers"]["x-api-key"] == "sk-test-123"
    assert call["headers"]["anthropic-version"] == "2023-06-01"
    assert call["body"]["max_tokens"] == 1024
    assert call["body"]["messages"] == [{"role": "user", "content": "hi"}]
    assert response.content == "claude\nsays hi"


def test_http_status_classification():
    assert classify_http_status("openai", 401, "m").code == "auth_error"
    assert classify_http_status("openai", 429, "m").retryable is True
    assert classify_http_status("openai", 503, "m").code == "server_error"
    assert classify_http_status("openai", 400, "m").retryable is False


def test_provider_maps_transport_errors():
    provider = OpenAiLlmProvider(fetcher=RecordingFetcher(httpx.ReadTimeout(""), httpx.ConnectError("refused")))

    with pytest.raises(LlmProviderError) as timeout:
        asyncio.run(provider.generate(LlmGenerateRequest(prompt="x"), _key()))
    with pytest.raises(LlmProviderError) as network:
        asyncio.run(provider.generate(LlmGenerateRequest(prompt="x"), _key()))

    assert timeout.value.code == "timeout"
    assert network.value.code == "network_error"
    assert network.value.retryable is True
    assert isinstance(network.value.__cause__, httpx.ConnectError)


@pytest.mark.parametrize(
    "provider, payload",
    [
        (OpenAiLlmProvider, {"output": "not-a-list"}),
        (ClaudeLlmProvider, {"content": {"type": "text", "text": "hi"}}),
    ],
)
def test_non_list_payload_is_a_bad_response(provider, payload):
    adapter = provider(fetcher=RecordingFetcher(FakeResponse(200, payload)))

    with pytest.raises(LlmProviderError) as exc:
        asyncio.run(adapter.generate(LlmGenerateRequest(prompt="x"), _key(adapter.id)))

    assert exc.value.code == "bad_response"
    assert exc.value.retryable is False


def test_provider_without_fetcher_is_not_implemented():
    with pytest.raises(LlmProviderError) as exc:
        asyncio.run(OpenAiLlmProvider().generate(LlmGenerateRequest(prompt="x"), _key()))
    assert exc.value.code == "provider_not_implemented"


# -- Router ------------------------------------------------------------------


def _router(openai_fetcher, claude_fetcher, keys=None, audit=None):
    return LlmRouter(
        providers=[OpenAiLlmProvider(fetcher=openai_fetcher), ClaudeLlmProvider(fetcher=claude_fetcher)],
        key_resolution=keys or _env_keys(),
        audit_sink=audit,
    )


def test_routing_order_drops_duplicate_primary():
    policy = LlmRoutingPolicy(primary="claude", fallback_order=["claude", "openai"])
    assert policy.order == ["claude", "openai"]


def test_primary_success_does_not_touch_fallback():
    claude = RecordingFetcher()
    audit = InMemoryLlmAuditSink()

    response = asyncio.run(_router(RecordingFetcher(OPENAI_OK), claude, audit=audit).generate(_route()))

    assert response.provider == "openai"
    assert claude.calls == []
    assert [e.event for e in audit.events] == [
        "llm.route.start",
        "llm.route.provider.attempt",
        "llm.route.provider.success",
    ]


def test_retryable_failure_falls_back():
    audit = InMemoryLlmAuditSink()
    router = _router(RecordingFetcher(FakeResponse(503, {"error": "down"})), RecordingFetcher(CLAUDE_OK), audit=audit)

    response = asyncio.run(router.generate(_route()))

    assert response.provider == "claude"
    events = [e.event for e in audit.events]
    assert "llm.route.provider.failure" in events
    assert "llm.route.provider.fallback" in events
    fallback = next(e for e in audit.events if e.event == "llm.route.provider.fallback")
    assert fallback.metadata == {"reason": "server_error", "nextProvider": "claude"}


def test_auth_error_stops_routing():
    claude = RecordingFetcher(CLAUDE_OK)
    router = _router(RecordingFetcher(FakeResponse(401, {"error": "bad key"})), claude)

    with pytest.raises(LlmRoutingExhaustedError) as exc:
        asyncio.run(router.generate(_route()))

    assert [a.code for a in exc.value.attempts] == ["auth_error"]
    assert exc.value.attempts[0].status_code == 401
    assert claude.calls == []


@pytest.mark.parametrize(
    "failure, code",
    [
        (FakeResponse(408, {"error": "slow"}), "timeout"),
        (httpx.ReadTimeout("read timed out"), "timeout"),
        (FakeResponse(429, {"error": "slow down"}), "rate_limit"),
        (httpx.ConnectError("connection refused"), "network_error"),
    ],
)
def test_each_retryable_failure_falls_back_once(failure, code):
    audit = InMemoryLlmAuditSink()
    openai = RecordingFetcher(failure)
    claude = RecordingFetcher(CLAUDE_OK)

    response = asyncio.run(_router(openai, claude, audit=audit).generate(_route()))

    assert len(openai.calls) == 1
    assert len(claude.calls) == 1
    assert response.provider == "claude"
    assert response.content == "claude\nsays hi"
    assert [(e.event, e.provider) for e in audit.events] == [
        ("llm.route.start", None),
        ("llm.route.provider.attempt", "openai"),
        ("llm.route.provider.failure", "openai"),
        ("llm.route.provider.fallback", "openai"),
        ("llm.route.provider.attempt", "claude"),
        ("llm.route.provider.success", "claude"),
    ]
    failure_event = audit.events[2]
    assert failure_event.metadata["code"] == code
    assert failure_event.metadata["retryable"] is True
    assert audit.events[3].metadata == {"reason": code, "nextProvider": "claude"}


@pytest.mark.parametrize("status, code", [(400, "bad_request"), (401, "auth_error")])
def test_non_retryable_failure_never_falls_back(status, code):
    audit = InMemoryLlmAuditSink()
    claude = RecordingFetcher(CLAUDE_OK)
    router = _router(RecordingFetcher(FakeResponse(status, {"error": "no"})), claude, audit=audit)

    with pytest.raises(LlmRoutingExhaustedError) as exc:
        asyncio.run(router.generate(_route()))

    assert claude.calls == []
    assert [a.code for a in exc.value.attempts] == [code]
    assert [e.event for e in audit.events] == [
        "llm.route.start",
        "llm.route.provider.attempt",
        "llm.route.provider.failure",
    ]
    assert audit.events[-1].metadata["retryable"] is False


def test_missing_key_skips_to_next_provider():
    audit = InMemoryLlmAuditSink()
    openai = RecordingFetcher(OPENAI_OK)
    router = _router(openai, RecordingFetcher(CLAUDE_OK), keys=_env_keys(openai=False), audit=audit)

    response = asyncio.run(router.generate(_route()))

    assert response.provider == "claude"
    assert openai.calls == []
    skipped = audit.events[1]
    assert skipped.event == "llm.route.provider.skipped"
    assert skipped.metadata == {"reason": "key_not_found"}


def test_unregistered_provider_is_skipped():
    router = LlmRouter(providers=[ClaudeLlmProvider(fetcher=RecordingFetcher(CLAUDE_OK))], key_resolution=_env_keys())
    response = asyncio.run(router.generate(_route()))
    assert response.provider == "claude"


def test_exhausted_when_no_keys_at_all():
    audit = InMemoryLlmAuditSink()
    router = _router(RecordingFetcher(), RecordingFetcher(), keys=_env_keys(openai=False, claude=False), audit=audit)

    with pytest.raises(LlmRoutingExhaustedError) as exc:
        asyncio.run(router.generate(_route(key_context=KeyContext(user_id="u1"))))

    assert [a.code for a in exc.value.attempts] == ["key_not_found", "key_not_found"]
    assert audit.events[-1].event == "llm.route.exhausted"
    assert len(audit.events[-1].metadata["attempts"]) == 2


def test_audit_events_never_carry_raw_keys():
    audit = InMemoryLlmAuditSink()
    asyncio.run(_router(RecordingFetcher(OPENAI_OK), RecordingFetcher(), audit=audit).generate(_route()))

    dumped = json.dumps([e.to_wire() for e in audit.events])
    assert "sk-openai" not in dumped
    assert all(e.request_id == "req-1" for e in audit.events)


# -- Audit sinks -------------------------------------------------------------


def test_redact_metadata_masks_sensitive_keys():
    redacted = redact_metadata({"apiKey": "x", "clientSecret": "y", "authToken": "z", "scope": "user"})
    assert redacted == {"apiKey": REDACTED, "clientSecret": REDACTED, "authToken": REDACTED, "scope": "user"}


def test_logger_sink_writes_redacted_record(caplog):
    sink = LoggerLlmAuditSink(logging.getLogger("panthereyes.test.audit"))
    event = LlmAuditEvent(ts="t", event="llm.route.start", metadata={"apiKey": "sk-secret"})

    with caplog.at_level(logging.INFO, logger="panthereyes.test.audit"):
        sink.emit(event)

    assert "llm.route.start" in caplog.text
    assert "sk-secret" not in caplog.text
    assert REDACTED in caplog.text


def test_json_lines_sink_round_trip(tmp_path):
    sink = JsonLinesLlmAuditSink(tmp_path / "audit.jsonl")
    sink.emit(LlmAuditEvent(ts="t1", event="llm.route.start", metadata={"token": "abc"}))
    sink.emit(LlmAuditEvent(ts="t2", event="llm.route.exhausted"))

    entries = sink.read_recent(1)
    assert entries == [{"ts": "t2", "event": "llm.route.exhausted"}]
    assert sink.read_recent()[0]["metadata"] == {"token": REDACTED}


# -- Gateway -----------------------------------------------------------------


def test_chat_model_is_noop_when_llm_disabled():
    model = create_chat_model(Settings(llm_enabled=False))

    assert isinstance(model, NoopChatModelAdapter)
    assert model.provider == "none"
    with pytest.raises(RuntimeError):
        asyncio.run(model.generate("hi"))


def test_chat_model_routes_when_enabled():
    settings = Settings(llm_enabled=True, llm_primary_provider="claude", llm_fallback_order=["openai"])
    model = create_chat_model(settings)

    assert isinstance(model, RoutedChatModelAdapter)
    assert model.routing.order == ["claude", "openai"]


def test_routed_adapter_returns_content():
    router = _router(RecordingFetcher(OPENAI_OK), RecordingFetcher())
    model = RoutedChatModelAdapter(router)

    assert asyncio.run(model.generate("hello")) == "openai says hi"


def test_default_router_reads_settings_keys():
    fetcher = RecordingFetcher(CLAUDE_OK)
    settings = Settings(panthereyes_openai_api_key="", panthereyes_anthropic_api_key="sk-from-settings")
    router = create_default_llm_router(settings, audit_sink=InMemoryLlmAuditSink(), fetcher=fetcher)

    response = asyncio.run(router.generate(_route()))

    assert response.provider == "claude"
    assert fetcher.calls[0]["headers"]["x-api-key"] == "sk-from-settings"
