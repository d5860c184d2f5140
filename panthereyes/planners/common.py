"""
Planner helpers — env/target inference and error normalization.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from panthereyes.core.config_files import resolve_root_dir
from panthereyes.models.agent_models import ChangeSet, ChatRequest, ToolTrace
from panthereyes.models.policy_models import EffectivePolicyPreview
from panthereyes.models.rule_models import RuleTarget
from panthereyes.tools.executor import ToolExecutionError

_ENV_TOKEN = re.compile(r"\b(dev|staging|prod)\b")


def infer_env(message: str) -> str:
    normalized = message.lower()
    if "prod" in normalized:
        return "prod"
    if "staging" in normalized or "stage" in normalized:
        return "staging"
    return "dev"


def infer_target(message: str) -> RuleTarget:
    normalized = message.lower()
    if any(token in normalized for token in ("mobile", "android", "ios")):
        return RuleTarget.MOBILE
    return RuleTarget.WEB


def resolve_planner_inputs(
    request: ChatRequest,
    default_root_dir: Optional[str] = None,
) -> tuple[str, RuleTarget, str]:
    """(env, target, root_dir): explicit context first, then message inference."""
    context = request.context
    env = (context.env.strip() if context and context.env else "") or infer_env(request.message)
    target = (context.target if context and context.target else None) or infer_target(request.message)
    root_dir = (context.root_dir.strip() if context and context.root_dir else "") or str(
        resolve_root_dir(default_root_dir or None)
    )
    return env, target, root_dir


def infer_environment_pair(message: str, requested_env: Optional[str] = None) -> tuple[str, str]:
    """
    (base_env, compare_env) for a comparison.

    Two distinct env names in the message win, in order of appearance. Otherwise
    a requested env is compared against dev (or staging when it is dev itself).
    """
    normalized = message.lower()
    unique = list(dict.fromkeys(_ENV_TOKEN.findall(normalized)))

    if len(unique) >= 2:
        return unique[0], unique[1]
    if requested_env:
        return ("staging" if requested_env == "dev" else "dev"), requested_env
    if "prod" in normalized:
        return "dev", "prod"
    if "staging" in normalized:
        return "dev", "staging"
    return "dev", "prod"


def normalize_tool_error(error: BaseException) -> tuple[Optional[ToolTrace], BaseException]:
    if isinstance(error, ToolExecutionError):
        return error.trace, error.cause
    return None, error


def empty_change_set(summary: str) -> ChangeSet:
    return ChangeSet(summary=summary, changes=[])


def policy_context_summary(preview: EffectivePolicyPreview, with_rule_count: bool = False) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "env": preview.env,
        "target": preview.target.value,
        "mode": preview.mode.value,
        "failOnSeverity": preview.fail_on_severity.value,
    }
    if with_rule_count:
        summary["ruleCount"] = len(preview.rules)
    return summary
