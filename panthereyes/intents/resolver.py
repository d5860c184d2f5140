"""
Intent Resolver — explicit intent first, keyword scoring otherwise.

    confidence = 0.2                          if no keyword hits
               = min(0.95, 0.35 + 0.15 * hits) otherwise

Ties keep catalog order.
"""

from __future__ import annotations

from typing import Optional

from panthereyes.intents.catalog import INTENT_CATALOG, get_intent_by_id
from panthereyes.models.agent_models import ResolvedIntent


def keyword_confidence(hits: int) -> float:
    if hits == 0:
        return 0.2
    return min(0.95, 0.35 + hits * 0.15)


def resolve_intent(message: str, requested_intent: Optional[str] = None) -> ResolvedIntent:
    requested = requested_intent.strip() if requested_intent else None
    if requested:
        explicit = get_intent_by_id(requested)
        if explicit is not None:
            return ResolvedIntent(
                requested_intent=requested,
                resolved_intent=explicit.id,
                confidence=1.0,
                strategy="explicit",
                reason=f"Requested intent matched catalog: {explicit.id}",
            )

    normalized = message.lower()
    scored = []
    for intent in INTENT_CATALOG:
        matched = [keyword for keyword in intent.keywords if keyword in normalized]
        scored.append((intent, matched, keyword_confidence(len(matched))))

    intent, matched, confidence = sorted(scored, key=lambda s: (-len(s[1]), -s[2]))[0]

    if matched:
        reason = f"Heuristic fallback matched {len(matched)} keyword(s): {', '.join(matched)}"
    else:
        reason = "Heuristic fallback found no keyword match; defaulted to first catalog intent"

    return ResolvedIntent(
        requested_intent=requested or None,
        resolved_intent=intent.id,
        confidence=confidence,
        strategy="heuristic",
        reason=reason,
    )
