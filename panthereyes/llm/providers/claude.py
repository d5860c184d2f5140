"""
Claude provider — Anthropic Messages API (`POST /v1/messages`).
"""

from __future__ import annotations

from typing import Any, Optional

from panthereyes.llm.providers.base import BaseHttpLlmProvider, HttpFetcher, drop_none
from panthereyes.llm.providers.openai import parse_usage
from panthereyes.models.llm_models import LlmGenerateRequest, LlmGenerateResponse

DEFAULT_CLAUDE_MODEL = "claude-3-5-sonnet-latest"
DEFAULT_CLAUDE_ENDPOINT = "https://api.anthropic.com/v1/messages"
DEFAULT_ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 1024


class ClaudeLlmProvider(BaseHttpLlmProvider):
    def __init__(
        self,
        model: str = DEFAULT_CLAUDE_MODEL,
        endpoint: str = DEFAULT_CLAUDE_ENDPOINT,
        fetcher: Optional[HttpFetcher] = None,
        anthropic_version: str = DEFAULT_ANTHROPIC_VERSION,
    ) -> None:
        super().__init__(id="claude", model=model, endpoint=endpoint, fetcher=fetcher)
        self.anthropic_version = anthropic_version

    def build_request_body(self, request: LlmGenerateRequest) -> dict[str, Any]:
        return drop_none({
            "model": self.model,
            "max_tokens": request.max_output_tokens or DEFAULT_MAX_TOKENS,
            "temperature": request.temperature,
            "system": request.system_prompt,
            "messages": [{"role": "user", "content": request.prompt}],
            "metadata": request.metadata,
        })

    def build_headers(self, api_key: str) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": self.anthropic_version,
        }

    def parse_response(self, raw: Any) -> LlmGenerateResponse:
        payload = raw if isinstance(raw, dict) else {}
        text = "\n".join(
            block["text"]
            for block in self.list_field(payload, "content")
            if isinstance(block, dict)
            and block.get("type") == "text"
            and isinstance(block.get("text"), str)
        )
        return LlmGenerateResponse(
            provider="claude",
            model=self.model,
            content=text,
            usage=parse_usage(payload),
            raw=raw,
        )
