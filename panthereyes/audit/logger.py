"""
Audit Logger — sinks for LLM routing audit events.

Every sink that leaves the process (log records, JSON-lines file) receives
redacted metadata: any key matching /key|secret|token/i becomes "[REDACTED]".
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol

from panthereyes.core.logging_context import LoggerLike
from panthereyes.models.llm_models import LlmAuditEvent

logger = logging.getLogger("panthereyes.audit")

REDACTED = "[REDACTED]"
_SENSITIVE_MARKERS = ("key", "secret", "token")


def is_sensitive_key(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in _SENSITIVE_MARKERS)


def redact_metadata(metadata: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Shallow copy with sensitive top-level keys replaced."""
    if metadata is None:
        return None
    return {
        key: REDACTED if is_sensitive_key(key) else value
        for key, value in metadata.items()
    }


def redact_event(event: LlmAuditEvent) -> dict[str, Any]:
    record = event.model_dump(mode="json", by_alias=True, exclude_none=True)
    if event.metadata is not None:
        record["metadata"] = redact_metadata(record.get("metadata"))
    return record


class LlmAuditSink(Protocol):
    def emit(self, event: LlmAuditEvent) -> None:
        ...


class LoggerLlmAuditSink:
    """Writes each event as one INFO record."""

    def __init__(self, log: Optional[LoggerLike] = None) -> None:
        self.log = log or logging.getLogger("panthereyes.llm.audit")

    def emit(self, event: LlmAuditEvent) -> None:
        record = redact_event(event)
        name = record.pop("event")
        self.log.info(f"{name} {json.dumps(record, default=str)}")


class InMemoryLlmAuditSink:
    """Keeps events in order, unredacted. For tests and diagnostics."""

    def __init__(self) -> None:
        self.events: list[LlmAuditEvent] = []

    def emit(self, event: LlmAuditEvent) -> None:
        self.events.append(event)


class JsonLinesLlmAuditSink:
    """Appends redacted events to a JSON-lines file."""

    def __init__(self, log_path: str | Path) -> None:
        self.log_path = Path(log_path)

    def emit(self, event: LlmAuditEvent) -> None:
        try:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(redact_event(event), default=str) + "\n")
        except OSError as e:
            logger.error(f"Failed to write audit log: {e}")

    def read_recent(self, count: int = 50) -> list[dict]:
        """Read the most recent N audit entries."""
        if not self.log_path.exists():
            return []

        entries: list[dict] = []
        try:
            with open(self.log_path, encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        try:
                            entries.append(json.loads(line))
                        except json.JSONDecodeError:
                            continue
        except OSError:
            return []

        return entries[-count:]


class FanOutLlmAuditSink:
    """Forwards every event to each sink in order."""

    def __init__(self, sinks: list[LlmAuditSink]) -> None:
        self.sinks = list(sinks)

    def emit(self, event: LlmAuditEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)
