"""Schema model — the base contract a blueprint must conform to."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import SchemaLoadError

logger = logging.getLogger(__name__)

BASE_SCHEMA_LOCATION = "kuken:Blueprint"

Shape = Literal["module", "string", "semver", "url", "inputs", "build"]

REQUIRED_FIELDS: tuple[str, ...] = ("module", "name", "version", "url", "inputs", "build")

MODULE_PATTERN = r"^io\.kuken\.[a-z][a-z0-9]*(?:-[a-z0-9]+)*\.[A-Z][A-Za-z0-9]*$"
SEMVER_PATTERN = (
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)
URL_PATTERN = r"^[A-Za-z][A-Za-z0-9+.-]*://[^\s/?#]+\S*$"

_SCALAR_PATTERNS: dict[str, re.Pattern[str]] = {
    "module": re.compile(MODULE_PATTERN),
    "semver": re.compile(SEMVER_PATTERN),
    "url": re.compile(URL_PATTERN),
}

# fields whose shape is fixed by the engine itself
_FIXED_SHAPES: dict[str, str] = {
    "module": "module",
    "version": "semver",
    "url": "url",
    "inputs": "inputs",
    "build": "build",
}


class FieldContract(BaseModel):
    """Declared shape of a single top-level blueprint field."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    shape: Shape
    required: bool = True
    default: Any = None


class Schema(BaseModel):
    """A closed set of top-level fields and their expected shapes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    contracts: dict[str, FieldContract] = Field(default_factory=dict)

    @property
    def required(self) -> list[str]:
        """Names of required fields, in declaration order."""
        return [name for name, contract in self.contracts.items() if contract.required]

    def __contains__(self, name: object) -> bool:
        return name in self.contracts

    def check(self, field: str, value: Any) -> str | None:
        """Return a reason if value does not satisfy the field's scalar shape.

        Structured shapes (inputs, build) are validated by their own models.
        """
        shape = self.contracts[field].shape
        if shape in ("inputs", "build"):
            return None
        if not isinstance(value, str):
            return f"expected a string, got {type(value).__name__}"
        if shape == "string":
            return None
        if _SCALAR_PATTERNS[shape].fullmatch(value) is None:
            return f"'{value}' is not a valid {shape}"
        return None


def load_schema(source: Mapping[str, Any]) -> Schema:
    """Load a schema from a parsed source mapping.

    Raises SchemaLoadError if a field's declared shape is malformed or a field
    the engine depends on is missing or optional.
    """
    name = source.get("name")
    if not isinstance(name, str) or not name:
        raise SchemaLoadError("Schema has no name", field="name")

    fields = source.get("fields", {})
    if not isinstance(fields, Mapping):
        raise SchemaLoadError(f"Schema '{name}': 'fields' must be a mapping", field="fields")

    contracts: dict[str, FieldContract] = {}
    for field_name, decl in fields.items():
        if not isinstance(decl, Mapping):
            raise SchemaLoadError(
                f"Schema '{name}': field '{field_name}' must be a mapping",
                field=field_name,
            )
        try:
            contract = FieldContract.model_validate(dict(decl))
        except ValidationError as exc:
            raise SchemaLoadError(
                f"Schema '{name}': malformed field '{field_name}': {exc.errors()[0]['msg']}",
                field=field_name,
            ) from exc
        fixed = _FIXED_SHAPES.get(field_name)
        if fixed is not None and contract.shape != fixed:
            raise SchemaLoadError(
                f"Schema '{name}': field '{field_name}' must have shape '{fixed}'",
                field=field_name,
            )
        contracts[field_name] = contract

    for required in REQUIRED_FIELDS:
        if required not in contracts:
            raise SchemaLoadError(
                f"Schema '{name}': missing required field '{required}'", field=required
            )
        if not contracts[required].required:
            raise SchemaLoadError(
                f"Schema '{name}': field '{required}' cannot be optional", field=required
            )

    logger.debug("Loaded schema '%s' with %d field(s)", name, len(contracts))
    return Schema(name=name, contracts=contracts)


BASE_SCHEMA = load_schema(
    {
        "name": BASE_SCHEMA_LOCATION,
        "fields": {
            "module": {"shape": "module"},
            "name": {"shape": "string"},
            "version": {"shape": "semver"},
            "url": {"shape": "url"},
            "description": {"shape": "string", "required": False, "default": ""},
            "inputs": {"shape": "inputs"},
            "build": {"shape": "build"},
        },
    }
)
