"""Value templates and reference resolution.

A template is an ordered sequence of literal text, input references
(``${Version}``) and runtime references (``${refs.instance.name}``). Input
references are resolved from validated input values; runtime references only
from a caller-supplied ResolutionContext.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import SecretStr

from .context import ResolutionContext
from .errors import UnresolvedReferenceError

logger = logging.getLogger(__name__)

_INTERP_PATTERN = re.compile(r"\$\$\{|\$\{([^{}]+)\}")

RUNTIME_PREFIX = "refs."


@dataclass(frozen=True)
class LiteralPart:
    """Literal text (or a literal scalar) copied through unchanged."""

    value: Any

    def __str__(self) -> str:
        return str(self.value).replace("${", "$${")


@dataclass(frozen=True)
class InputRef:
    """Reference to a declared input by name."""

    name: str

    def __str__(self) -> str:
        return f"${{{self.name}}}"


@dataclass(frozen=True)
class RuntimeRef:
    """Opaque runtime path, resolved by the deployment context."""

    path: str

    def __str__(self) -> str:
        return f"${{{RUNTIME_PREFIX}{self.path}}}"


Part = LiteralPart | InputRef | RuntimeRef


def _parse_ref(ref: str) -> InputRef | RuntimeRef:
    if not ref:
        raise ValueError("empty reference '${}'")
    if ref.startswith(RUNTIME_PREFIX):
        path = ref[len(RUNTIME_PREFIX) :]
        if not path:
            raise ValueError(f"empty runtime reference '${{{ref}}}'")
        return RuntimeRef(path)
    return InputRef(ref)


@dataclass(frozen=True)
class Template:
    """An ordered, immutable value expression."""

    parts: tuple[Part, ...] = ()

    @classmethod
    def parse(cls, source: Any) -> Template:
        """Parse a raw value into a template.

        Non-string scalars become a single literal part. Use ``$${`` for a
        literal ``${``.
        """
        if isinstance(source, Template):
            return source
        if not isinstance(source, str):
            return cls((LiteralPart(source),))

        parts: list[Part] = []
        buf: list[str] = []
        pos = 0
        for match in _INTERP_PATTERN.finditer(source):
            buf.append(source[pos : match.start()])
            pos = match.end()
            if match.group(0) == "$${":
                buf.append("${")
                continue
            if text := "".join(buf):
                parts.append(LiteralPart(text))
            buf = []
            parts.append(_parse_ref(match.group(1).strip()))
        buf.append(source[pos:])
        if text := "".join(buf):
            parts.append(LiteralPart(text))
        return cls(tuple(parts))

    @property
    def refs(self) -> tuple[InputRef | RuntimeRef, ...]:
        """References in left-to-right order."""
        return tuple(p for p in self.parts if not isinstance(p, LiteralPart))

    def __str__(self) -> str:
        return "".join(str(p) for p in self.parts)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ReferenceResolver:
    """Resolve templates against input values and a runtime context."""

    def __init__(
        self,
        values: Mapping[str, Any],
        context: Mapping[str, Any] | None = None,
    ) -> None:
        self._values = values
        if isinstance(context, ResolutionContext):
            self._context = context
        else:
            self._context = ResolutionContext(context)

    def _resolve_ref(self, ref: InputRef | RuntimeRef) -> Any:
        if isinstance(ref, InputRef):
            if ref.name not in self._values:
                raise UnresolvedReferenceError(ref.name)
            return self._values[ref.name]

        try:
            value = self._context.lookup(ref.path)
        except KeyError:
            raise UnresolvedReferenceError(f"{RUNTIME_PREFIX}{ref.path}") from None

        if callable(value) and not isinstance(value, type):
            value = value()
        return value

    def check(self, refs: Iterable[InputRef | RuntimeRef]) -> None:
        """Raise UnresolvedReferenceError for the first reference that cannot be found.

        Runtime values are looked up but never called.
        """
        for ref in refs:
            if isinstance(ref, InputRef):
                if ref.name not in self._values:
                    raise UnresolvedReferenceError(ref.name)
            elif ref.path not in self._context:
                raise UnresolvedReferenceError(f"{RUNTIME_PREFIX}{ref.path}")

    def resolve(self, template: Template) -> Any:
        """Resolve a template to a concrete value.

        A template holding a single reference returns the referenced value
        directly (preserving type). Otherwise parts are stringified and
        joined; if any part is a secret the result is a SecretStr.
        """
        parts = template.parts
        if len(parts) == 1:
            part = parts[0]
            if isinstance(part, LiteralPart):
                return part.value
            return self._resolve_ref(part)

        pieces: list[str] = []
        secret = False
        for part in parts:
            if isinstance(part, LiteralPart):
                pieces.append(_stringify(part.value))
                continue
            value = self._resolve_ref(part)
            if isinstance(value, SecretStr):
                secret = True
                value = value.get_secret_value()
            pieces.append(_stringify(value))

        text = "".join(pieces)
        return SecretStr(text) if secret else text
