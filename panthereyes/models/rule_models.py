"""
Rule Catalog Data Models — rule metadata, exceptions, and their file schemas.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from panthereyes.models.base import CamelModel, NonEmptyStr


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RuleTarget(str, Enum):
    WEB = "web"
    MOBILE = "mobile"


class RuleMetadata(CamelModel):
    """A single rule from `.panthereyes/rules.yaml`. Identity is `rule_id`."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    rule_id: NonEmptyStr = Field(..., description="Unique rule identifier, e.g. 'web.csp.required'")
    title: NonEmptyStr
    description: NonEmptyStr
    default_severity: Severity
    remediation: NonEmptyStr
    tags: list[NonEmptyStr] = Field(default_factory=list)
    allow_exception: bool = False
    targets: list[RuleTarget] = Field(
        default_factory=lambda: [RuleTarget.WEB, RuleTarget.MOBILE]
    )


class ExceptionScope(CamelModel):
    paths: list[NonEmptyStr] | None = None
    services: list[NonEmptyStr] | None = None


class RuleException(CamelModel):
    """A time-bounded waiver for one rule in a set of environments/targets."""

    exception_id: NonEmptyStr
    rule_id: NonEmptyStr
    environments: list[NonEmptyStr] = Field(..., min_length=1)
    targets: list[RuleTarget] = Field(..., min_length=1)
    reason: NonEmptyStr
    approved_by: NonEmptyStr
    expires_on: str | None = Field(
        default=None,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Last day (inclusive, UTC) on which the exception applies",
    )
    scope: ExceptionScope | None = None

    @field_validator("expires_on", mode="before")
    @classmethod
    def _coerce_yaml_date(cls, value: object) -> object:
        # PyYAML turns unquoted 2099-12-31 into a datetime.date
        if isinstance(value, dt.date):
            return value.isoformat()
        return value


class RulesFile(CamelModel):
    version: int = Field(default=1, ge=1)
    rules: list[RuleMetadata]


class ExceptionsFile(CamelModel):
    version: int = Field(default=1, ge=1)
    exceptions: list[RuleException]
