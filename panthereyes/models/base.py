"""
Shared model base — snake_case attributes, camelCase on the wire.

The YAML files under `.panthereyes/` and every JSON payload use camelCase keys
(`ruleId`, `failOnSeverity`, ...). Models accept either spelling on input and
dump with aliases.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

NonEmptyStr = Annotated[str, Field(min_length=1)]

_ANY_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def to_jsonable(value: Any) -> Any:
    """JSON-compatible form of an arbitrary payload that may nest CamelModels."""
    return _ANY_ADAPTER.dump_python(value, mode="json", by_alias=True, exclude_none=True)
