"""
Planner Registry — maps each intent id to its planner.
"""

from __future__ import annotations

from typing import Iterable, Optional

from panthereyes.planners.base import Planner
from panthereyes.planners.compare_policy_envs import ComparePolicyEnvsPlanner
from panthereyes.planners.create_policy_exception import CreatePolicyExceptionPlanner
from panthereyes.planners.explain_finding import ExplainFindingPlanner
from panthereyes.planners.generate_policy_tests import GeneratePolicyTestsPlanner
from panthereyes.planners.suggest_remediation import SuggestRemediationPlanner


class UnknownPlannerError(KeyError):
    def __str__(self) -> str:
        return f"No planner registered for intent: {self.args[0]}"


def default_planners() -> list[Planner]:
    return [
        GeneratePolicyTestsPlanner(),
        ComparePolicyEnvsPlanner(),
        ExplainFindingPlanner(),
        SuggestRemediationPlanner(),
        CreatePolicyExceptionPlanner(),
    ]


class PlannerRegistry:
    def __init__(self, planners: Optional[Iterable[Planner]] = None) -> None:
        if planners is None:
            planners = default_planners()
        self._planners = {planner.id: planner for planner in planners}

    def get(self, intent_id: str) -> Planner:
        try:
            return self._planners[intent_id]
        except KeyError:
            raise UnknownPlannerError(intent_id) from None

    def list(self) -> list[Planner]:
        return list(self._planners.values())
