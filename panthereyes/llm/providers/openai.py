"""
OpenAI provider — Responses API (`POST /v1/responses`).
"""

from __future__ import annotations

from typing import Any, Optional

from panthereyes.llm.providers.base import BaseHttpLlmProvider, HttpFetcher, drop_none
from panthereyes.models.llm_models import LlmGenerateRequest, LlmGenerateResponse, LlmUsage

DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
DEFAULT_OPENAI_ENDPOINT = "https://api.openai.com/v1/responses"


def parse_usage(raw: Any) -> LlmUsage:
    usage = raw.get("usage") if isinstance(raw, dict) else None
    if not isinstance(usage, dict):
        usage = {}
    return LlmUsage(
        input_tokens=usage.get("input_tokens"),
        output_tokens=usage.get("output_tokens"),
    )


class OpenAiLlmProvider(BaseHttpLlmProvider):
    def __init__(
        self,
        model: str = DEFAULT_OPENAI_MODEL,
        endpoint: str = DEFAULT_OPENAI_ENDPOINT,
        fetcher: Optional[HttpFetcher] = None,
    ) -> None:
        super().__init__(id="openai", model=model, endpoint=endpoint, fetcher=fetcher)

    def build_request_body(self, request: LlmGenerateRequest) -> dict[str, Any]:
        if request.system_prompt:
            model_input: Any = [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.prompt},
            ]
        else:
            model_input = request.prompt

        return drop_none({
            "model": self.model,
            "input": model_input,
            "temperature": request.temperature,
            "max_output_tokens": request.max_output_tokens,
            "metadata": request.metadata,
        })

    def build_headers(self, api_key: str) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "authorization": f"Bearer {api_key}",
        }

    def parse_response(self, raw: Any) -> LlmGenerateResponse:
        payload = raw if isinstance(raw, dict) else {}
        content = payload.get("output_text")
        if not isinstance(content, str):
            # Raw Responses payloads carry text under output[].content[].text
            parts = [
                item.get("text")
                for block in self.list_field(payload, "output")
                if isinstance(block, dict)
                for item in (block.get("content") if isinstance(block.get("content"), list) else [])
                if isinstance(item, dict) and isinstance(item.get("text"), str)
            ]
            content = "".join(parts)

        return LlmGenerateResponse(
            provider="openai",
            model=self.model,
            content=content,
            usage=parse_usage(payload),
            raw=raw,
        )
