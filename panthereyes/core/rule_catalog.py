"""
Rule Catalog — loads `.panthereyes/rules.yaml` and `.panthereyes/exceptions.yaml`.

A missing rule catalog is not an error: the built-in DEFAULT_RULE_CATALOG is
used instead. A missing exceptions file is.
"""

from __future__ import annotations

import logging
from pathlib import Path

from panthereyes.core.config_files import (
    EXCEPTIONS_FILE_NAME,
    RULES_FILE_NAME,
    config_file_path,
    parse_yaml_model,
    read_config_file,
)
from panthereyes.core.exceptions import (
    ExceptionsIoError,
    ExceptionsSchemaError,
    RuleCatalogIoError,
    RuleCatalogSchemaError,
)
from panthereyes.models.rule_models import (
    ExceptionsFile,
    RuleMetadata,
    RulesFile,
    RuleTarget,
    Severity,
)

logger = logging.getLogger("panthereyes.rule_catalog")


DEFAULT_RULE_CATALOG = RulesFile(
    version=1,
    rules=[
        RuleMetadata(
            rule_id="web.csp.required",
            title="Content-Security-Policy required",
            description="Web applications must configure CSP to reduce XSS risk.",
            default_severity=Severity.HIGH,
            remediation="Set the Content-Security-Policy header with restrictive directives.",
            tags=["web", "headers", "xss"],
            allow_exception=True,
            targets=[RuleTarget.WEB],
        ),
        RuleMetadata(
            rule_id="mobile.debug.disabled",
            title="Production build without debug",
            description="Production mobile builds must not ship with debugging enabled.",
            default_severity=Severity.MEDIUM,
            remediation="Make sure release build flags disable debugging and never set debuggable=true.",
            tags=["mobile", "release-hardening"],
            allow_exception=False,
            targets=[RuleTarget.MOBILE],
        ),
    ],
)


def parse_rules_yaml(raw_yaml: str, file_path: str = ".panthereyes/rules.yaml") -> RulesFile:
    return parse_yaml_model(raw_yaml, RulesFile, file_path, RuleCatalogSchemaError)


def parse_exceptions_yaml(
    raw_yaml: str, file_path: str = ".panthereyes/exceptions.yaml"
) -> ExceptionsFile:
    return parse_yaml_model(raw_yaml, ExceptionsFile, file_path, ExceptionsSchemaError)


def load_rule_catalog(root_dir: str | Path | None = None) -> RulesFile:
    """
    Load and validate the rule catalog under `root_dir`.

    Raises:
        RuleCatalogIoError: the file exists but cannot be read.
        RuleCatalogSchemaError: the file is not a valid rule catalog.
    """
    file_path = config_file_path(root_dir, RULES_FILE_NAME)
    if not file_path.exists():
        logger.info("No rule catalog at %s, using built-in default catalog", file_path)
        return DEFAULT_RULE_CATALOG

    raw_yaml = read_config_file(file_path, RuleCatalogIoError)
    return parse_rules_yaml(raw_yaml, str(file_path))


def load_exceptions(root_dir: str | Path | None = None) -> ExceptionsFile:
    """
    Load and validate the exceptions file under `root_dir`.

    Raises:
        ExceptionsIoError: the file is missing or unreadable.
        ExceptionsSchemaError: the file is not a valid exceptions document.
    """
    file_path = config_file_path(root_dir, EXCEPTIONS_FILE_NAME)
    raw_yaml = read_config_file(file_path, ExceptionsIoError)
    return parse_exceptions_yaml(raw_yaml, str(file_path))
