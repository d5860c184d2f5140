"""
Tests for Intent Resolver — explicit intents and keyword heuristics.
"""

import pytest

from panthereyes.intents.catalog import INTENT_CATALOG, get_intent_by_id
from panthereyes.intents.resolver import keyword_confidence, resolve_intent


def test_catalog_has_five_intents():
    assert [intent.id for intent in INTENT_CATALOG] == [
        "compare_policy_envs",
        "explain_finding",
        "suggest_remediation",
        "create_policy_exception",
        "generate_policy_tests",
    ]
    assert get_intent_by_id("unknown") is None


def test_explicit_intent_wins_over_keywords():
    resolved = resolve_intent("compare dev and prod policy", "explain_finding")

    assert resolved.resolved_intent == "explain_finding"
    assert resolved.strategy == "explicit"
    assert resolved.confidence == 1.0
    assert resolved.requested_intent == "explain_finding"


def test_unknown_explicit_intent_falls_back_to_heuristics():
    resolved = resolve_intent("please fix this and mitigate it", "do_magic")

    assert resolved.strategy == "heuristic"
    assert resolved.resolved_intent == "suggest_remediation"
    assert resolved.requested_intent == "do_magic"


def test_heuristic_picks_most_keyword_hits():
    resolved = resolve_intent("Compare the policy between dev and prod")

    assert resolved.resolved_intent == "compare_policy_envs"
    assert resolved.strategy == "heuristic"
    assert resolved.reason.startswith("Heuristic fallback matched 4 keyword(s)")
    assert resolved.confidence == keyword_confidence(4)


def test_heuristic_matches_finding_ids():
    resolved = resolve_intent("Explain IOS-ATS-001")
    assert resolved.resolved_intent == "explain_finding"


def test_no_keywords_defaults_to_first_intent():
    resolved = resolve_intent("hello")

    assert resolved.resolved_intent == "compare_policy_envs"
    assert resolved.confidence == 0.2
    assert "no keyword match" in resolved.reason


def test_confidence_is_capped():
    assert keyword_confidence(1) == pytest.approx(0.5)
    assert keyword_confidence(10) == 0.95
