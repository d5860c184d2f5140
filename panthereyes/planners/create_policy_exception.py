"""
Create Policy Exception planner — proposes an exceptions.yaml entry as a dry-run ChangeSet.

The existing exceptions file is read (never written); the proposed content
either appends to it or replaces it with a fresh document.
"""

from __future__ import annotations

import re
from typing import Optional

from panthereyes.core.config_files import EXCEPTIONS_FILE_NAME, config_file_path
from panthereyes.models.agent_models import (
    Change,
    ChangeSet,
    PlannerContextInfo,
    PlannerExecutionResult,
)
from panthereyes.planners.base import Planner, PlannerRun, PlannerRunInput
from panthereyes.planners.common import policy_context_summary, resolve_planner_inputs
from panthereyes.planners.finding_knowledge import extract_finding_id, resolve_finding_knowledge

EXCEPTION_EXPIRES_ON = "2099-12-31"
EXCEPTIONS_RELATIVE_PATH = f".panthereyes/{EXCEPTIONS_FILE_NAME}"
MAX_REASON_LENGTH = 240

_VERSION_LINE = re.compile(r"^version:\s*\d+", re.MULTILINE)
_EXCEPTIONS_LINE = re.compile(r"^exceptions:\s*$", re.MULTILINE)


def sanitize_id_part(value: str) -> str:
    return re.sub(r"[^A-Z0-9]+", "-", value.upper()).strip("-")[:40]


def infer_owner(message: str) -> str:
    lowered = message.lower()
    if "security-team" in lowered or "security team" in lowered:
        return "security-team"
    if "mobile-team" in lowered or "mobile team" in lowered:
        return "mobile-team"
    return "security-team"


def infer_reason(message: str, rule_id: str) -> str:
    normalized = message.strip()
    if normalized:
        return f"Temporary exception requested via agent for {rule_id}: {normalized}"[:MAX_REASON_LENGTH]
    return f"Temporary exception requested via agent for {rule_id}"


def build_exception_entry_yaml(
    exception_id: str,
    rule_id: str,
    env: str,
    target: str,
    owner: str,
    reason: str,
    expires_on: str,
) -> str:
    escaped_reason = reason.replace('"', "'")
    return (
        f"  - exceptionId: {exception_id}\n"
        f"    ruleId: {rule_id}\n"
        f"    environments: [{env}]\n"
        f"    targets: [{target}]\n"
        f'    reason: "{escaped_reason}"\n'
        f"    approvedBy: {owner}\n"
        f"    expiresOn: {expires_on}\n"
    )


def build_updated_exceptions_yaml(existing: Optional[str], entry_yaml: str) -> tuple[str, str]:
    """(change kind, full proposed file content)."""
    if not existing:
        return "create", f"version: 1\nexceptions:\n{entry_yaml}"

    trimmed = existing.rstrip()
    if _VERSION_LINE.search(trimmed):
        if _EXCEPTIONS_LINE.search(trimmed):
            return "update", f"{trimmed}\n{entry_yaml}"
        return "update", f"{trimmed}\nexceptions:\n{entry_yaml}"

    return "update", f"version: 1\nexceptions:\n{entry_yaml}"


class CreatePolicyExceptionPlanner(Planner):
    id = "create_policy_exception"

    async def plan(self, input: PlannerRunInput, run: PlannerRun) -> PlannerExecutionResult:
        request = input.request
        env, target, root_dir = resolve_planner_inputs(request, run.context.default_root_dir)
        requested = extract_finding_id(request.message)
        knowledge = resolve_finding_knowledge(requested)
        rule_id = (knowledge.canonical_id if knowledge else None) or requested or f"{target.value}.unknown.finding"
        owner = infer_owner(request.message)
        reason = infer_reason(request.message, rule_id)
        exception_id = f"EXC-{sanitize_id_part(rule_id)}-{sanitize_id_part(env)}"

        run.log.info(
            f"planner.create_policy_exception.start root_dir={root_dir} env={env} "
            f"target={target.value} rule_id={rule_id} exception_id={exception_id}"
        )

        validation = await run.tool("validate_security_config", {"root_dir": root_dir})

        exceptions_path = config_file_path(root_dir, EXCEPTIONS_FILE_NAME)
        existing = exceptions_path.read_text(encoding="utf-8") if exceptions_path.exists() else None
        entry_yaml = build_exception_entry_yaml(
            exception_id, rule_id, env, target.value, owner, reason, EXCEPTION_EXPIRES_ON
        )
        kind, content = build_updated_exceptions_yaml(existing, entry_yaml)

        change_set = ChangeSet(
            summary=f"Proposed 1 exception change for {rule_id} in {env}/{target.value}",
            changes=[
                Change(
                    kind=kind,
                    path=EXCEPTIONS_RELATIVE_PATH,
                    language="yaml",
                    reason=f"Add proposed exception {exception_id} for {rule_id} ({env}/{target.value}).",
                    content=content,
                )
            ],
        )

        policy_context = None
        if request.context and request.context.root_dir:
            try:
                preview = await run.tool(
                    "preview_effective_policy", {"root_dir": root_dir, "env": env, "target": target}
                )
            except Exception as e:
                run.log.warning(f"planner.create_policy_exception.preview_skipped: {e}")
            else:
                policy_context = policy_context_summary(preview)

        summary = (
            f"Proposed policy exception {exception_id} for {rule_id} "
            f"({env}/{target.value}) as dry-run ChangeSet."
        )
        return PlannerExecutionResult(
            planner_id=self.id,
            summary=summary,
            change_set=change_set,
            tool_outputs={
                "validation": validation,
                "proposedException": {
                    "exceptionId": exception_id,
                    "ruleId": rule_id,
                    "environments": [env],
                    "targets": [target.value],
                    "approvedBy": owner,
                    "reason": reason,
                    "expiresOn": EXCEPTION_EXPIRES_ON,
                },
                "policyContext": policy_context,
            },
            context=PlannerContextInfo(env=env, target=target, root_dir=root_dir),
        )
