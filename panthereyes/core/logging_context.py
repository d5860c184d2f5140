"""
Logging Context — request-scoped loggers carrying key/value bindings.

    log = bind_logger(logging.getLogger("panthereyes.agent"), request_id="r-1")
    tool_log = bind_logger(log, tool="preview_effective_policy")
    tool_log.info("tool.start")   # -> "tool.start [request_id=r-1 tool=preview_effective_policy]"
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Union

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


class BoundLogger(logging.LoggerAdapter):
    """LoggerAdapter that appends its bindings to every message."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        if self.extra:
            bound = " ".join(f"{key}={value}" for key, value in self.extra.items())
            msg = f"{msg} [{bound}]"
        return msg, kwargs


def bind_logger(logger: LoggerLike, **bindings: Any) -> BoundLogger:
    """Child logger; bindings merge over those already bound (later wins)."""
    if isinstance(logger, logging.LoggerAdapter):
        merged = {**(logger.extra or {}), **bindings}
        return BoundLogger(logger.logger, merged)
    return BoundLogger(logger, dict(bindings))
