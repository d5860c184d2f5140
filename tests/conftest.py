"""
Test fixtures shared across all PantherEyes tests.
"""

import pytest

POLICY_YAML = """\
version: 1
defaults:
  mode: audit
  failOnSeverity: high
  directives:
    minScore: 70
    sampleRate: 0.1
envs:
  dev:
    mode: warn
    directives:
      minScore: 60
    ruleOverrides:
      web.csp.required:
        severity: medium
  staging:
    mode: warn
  prod:
    mode: enforce
    failOnSeverity: medium
    directives:
      minScore: 90
    targets:
      web:
        directives:
          requireCsp: true
      mobile:
        ruleOverrides:
          mobile.debug.disabled:
            severity: critical
"""

RULES_YAML = """\
version: 1
rules:
  - ruleId: web.csp.required
    title: Content-Security-Policy required
    description: Web apps must send a CSP header.
    defaultSeverity: high
    remediation: Configure a restrictive Content-Security-Policy header.
    tags: [web, headers]
    allowException: true
    targets: [web]
  - ruleId: web.cors.strict
    title: Strict CORS
    description: CORS must not allow wildcard origins with credentials.
    defaultSeverity: medium
    remediation: Restrict allowed origins.
    allowException: false
    targets: [web]
  - ruleId: mobile.debug.disabled
    title: Production build without debug
    description: Release builds must not be debuggable.
    defaultSeverity: medium
    remediation: Disable debuggable in release builds.
    allowException: false
    targets: [mobile]
  - ruleId: mobile.ats.strict
    title: Strict App Transport Security
    description: ATS must not allow arbitrary loads.
    defaultSeverity: high
    remediation: Remove NSAllowsArbitraryLoads.
    allowException: true
    targets: [mobile]
"""

EXCEPTIONS_YAML = """\
version: 1
exceptions:
  - exceptionId: EXC-CSP-DEV
    ruleId: web.csp.required
    environments: [dev]
    targets: [web]
    reason: Local dev server injects inline scripts
    approvedBy: security-team
    expiresOn: 2099-12-31
  - exceptionId: EXC-ATS-PROD-EXPIRED
    ruleId: mobile.ats.strict
    environments: [prod]
    targets: [mobile]
    reason: Legacy CDN migration
    approvedBy: mobile-team
    expiresOn: 2000-01-01
"""


def write_workspace(root, policy=POLICY_YAML, rules=RULES_YAML, exceptions=EXCEPTIONS_YAML):
    config_dir = root / ".panthereyes"
    config_dir.mkdir(parents=True, exist_ok=True)
    for name, content in (("policy.yaml", policy), ("rules.yaml", rules), ("exceptions.yaml", exceptions)):
        if content is not None:
            (config_dir / name).write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def policy_workspace(tmp_path):
    """A workspace root with policy, rules and exceptions files."""
    return write_workspace(tmp_path)


@pytest.fixture
def policy_root(policy_workspace):
    return str(policy_workspace)


@pytest.fixture
def make_workspace(tmp_path):
    """Factory for workspaces with custom (or missing, via None) config files."""
    def factory(name="workspace", **files):
        return write_workspace(tmp_path / name, **files)
    return factory
