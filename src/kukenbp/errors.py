"""Error taxonomy for blueprint loading, resolution and rendering."""

from __future__ import annotations


class BlueprintError(ValueError):
    """Base class for all engine errors; carries the offending field name."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class SchemaLoadError(BlueprintError):
    """A schema source is malformed."""


class ResolutionError(BlueprintError):
    """A blueprint module could not be resolved against its schema."""


class CyclicInheritanceError(ResolutionError):
    """An amends chain revisits a location it already passed through."""

    def __init__(self, chain: list[str]) -> None:
        super().__init__(
            f"Cyclic inheritance detected: {' -> '.join(chain)}",
            field="amends",
        )
        self.chain = tuple(chain)


class IncompleteBlueprintError(ResolutionError):
    """A field required by the schema is absent after merge."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Missing required field: '{field}'", field=field)


class InvalidInputDeclaration(BlueprintError):
    """An input declaration violates its variant's rules."""


class RenderError(BlueprintError):
    """A render request failed; no manifest is produced."""


class MissingRequiredInput(RenderError):
    """An input has neither a supplied value nor a default."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing required input: '{name}'", field=name)


class InvalidInputValue(RenderError):
    """A supplied (or default) value failed variant validation."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Invalid value for input '{name}': {reason}", field=name)
        self.reason = reason


class UnresolvedReferenceError(RenderError):
    """A reference in the build could not be resolved."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"Unresolved reference: '${{{ref}}}'", field=ref)
