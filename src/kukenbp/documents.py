"""Document model — one unresolved blueprint source tree."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .fixtures import Fixture


@dataclass(frozen=True)
class Document:
    """A parsed blueprint tree plus where it came from."""

    location: str
    data: Mapping[str, Any]
    path: Path | None = None
    fixtures: tuple[Fixture, ...] = field(default=())

    @classmethod
    def inline(cls, data: Mapping[str, Any]) -> Document:
        """Wrap an already-parsed tree that has no file behind it."""
        return cls(location=str(data.get("module", "<inline>")), data=data)

    @property
    def amends(self) -> Any:
        return self.data.get("amends")

    @property
    def module(self) -> str | None:
        return self.data.get("module")
