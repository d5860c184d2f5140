"""
Agent Adapters — the collaborators tools and planners are allowed to touch.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from panthereyes.adapters.policy_config import WorkspacePolicyConfigAdapter
from panthereyes.adapters.scan_cli import PantherEyesCliAdapter
from panthereyes.llm.gateway import ChatModelAdapter, NoopChatModelAdapter


@dataclass
class AgentAdapters:
    policy_config: WorkspacePolicyConfigAdapter = field(default_factory=WorkspacePolicyConfigAdapter)
    cli: PantherEyesCliAdapter = field(default_factory=PantherEyesCliAdapter)
    llm: ChatModelAdapter = field(default_factory=NoopChatModelAdapter)
