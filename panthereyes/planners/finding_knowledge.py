"""
Finding Knowledge — deterministic explanations for seeded scanner findings.

Lookups accept the canonical id or any alias, case-insensitively.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from panthereyes.models.rule_models import RuleTarget, Severity


@dataclass(frozen=True)
class FindingKnowledge:
    canonical_id: str
    aliases: tuple[str, ...]
    title: str
    severity: Severity
    target: RuleTarget
    explanation: str
    risk: tuple[str, ...]
    remediation: tuple[str, ...]
    references: tuple[str, ...]


FINDING_KNOWLEDGE: tuple[FindingKnowledge, ...] = (
    FindingKnowledge(
        canonical_id="mobile.ios.ats.arbitrary-loads-enabled",
        aliases=("IOS-ATS-001",),
        title="iOS ATS relaxed (NSAllowsArbitraryLoads=true)",
        severity=Severity.HIGH,
        target=RuleTarget.MOBILE,
        explanation=(
            "App Transport Security (ATS) is broadly disabled, allowing insecure HTTP connections "
            "and weakening transport protections expected by iOS."
        ),
        risk=(
            "Traffic can be downgraded to plaintext when endpoints are not strictly HTTPS.",
            "Increases exposure to interception and man-in-the-middle attacks in production environments.",
        ),
        remediation=(
            "Remove `NSAllowsArbitraryLoads = true` from `Info.plist` for production builds.",
            "Use per-domain exceptions (`NSExceptionDomains`) only when strictly necessary.",
            "Keep relaxed networking only for local development and document it in PantherEyes policy as `warn` for dev.",
        ),
        references=("samples/ios-panthereyes-demo/ios/Resources/Info.plist",),
    ),
    FindingKnowledge(
        canonical_id="mobile.android.cleartext-traffic-enabled",
        aliases=("AND-NET-001",),
        title="Android cleartext traffic enabled",
        severity=Severity.HIGH,
        target=RuleTarget.MOBILE,
        explanation=(
            "The Android app manifest allows cleartext traffic, which permits non-TLS HTTP "
            "connections and weakens transport security guarantees."
        ),
        risk=(
            "Data sent over HTTP can be intercepted or modified on hostile networks.",
            "Cleartext allowances often leak from dev/test into prod builds if not explicitly gated.",
        ),
        remediation=(
            'Set `android:usesCleartextTraffic="false"` in production manifests.',
            "If local dev needs HTTP, use a debug-only manifest override or network security config scoped to debug.",
            "Align PantherEyes prod policy to block transport findings while keeping dev as warn/audit if needed.",
        ),
        references=("samples/android-panthereyes-demo/android/app/src/main/AndroidManifest.xml",),
    ),
    FindingKnowledge(
        canonical_id="mobile.android.debuggable-enabled",
        aliases=("AND-DBG-001",),
        title="Android debuggable enabled",
        severity=Severity.HIGH,
        target=RuleTarget.MOBILE,
        explanation=(
            "The app is marked debuggable in a configuration that should be hardened, increasing "
            "attack surface and runtime inspection risk."
        ),
        risk=(
            "Attackers can attach debuggers more easily on compromised devices.",
            "Debug-only behavior may remain active in builds distributed beyond local development.",
        ),
        remediation=(
            "Ensure `android:debuggable` is not hardcoded `true` in release-like manifests.",
            "Control debuggable through build types and verify release builds set it to false.",
        ),
        references=("samples/android-panthereyes-demo/android/app/src/main/AndroidManifest.xml",),
    ),
)

_ALIAS_PATTERN = re.compile(r"\b([A-Z]{2,}-[A-Z]{2,}-\d{3})\b", re.IGNORECASE)
_CANONICAL_PATTERN = re.compile(r"\b((?:mobile|web)\.[a-z0-9.-]+)\b", re.IGNORECASE)


def resolve_finding_knowledge(id_or_alias: Optional[str]) -> Optional[FindingKnowledge]:
    if not id_or_alias:
        return None
    normalized = id_or_alias.strip().lower()
    for entry in FINDING_KNOWLEDGE:
        if entry.canonical_id.lower() == normalized:
            return entry
        if any(alias.lower() == normalized for alias in entry.aliases):
            return entry
    return None


def extract_finding_id(message: str) -> Optional[str]:
    """First alias-shaped id (IOS-ATS-001) in the message, else a canonical id."""
    match = _ALIAS_PATTERN.search(message) or _CANONICAL_PATTERN.search(message)
    if match:
        return match.group(1).rstrip(".")
    return None
