"""Runtime resolution context supplied by the deployment collaborator."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

_MISSING = object()


class ResolutionContext(Mapping[str, Any]):
    """Read-only mapping of runtime reference paths to concrete values.

    Paths may be given flat (``{"instance.name": "db"}``) or nested
    (``{"instance": {"name": "db"}}``); flat keys win when both exist.
    """

    def __init__(self, values: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        if isinstance(values, ResolutionContext):
            values = values._values
        merged = dict(values or {})
        merged.update(kwargs)
        self._values = MappingProxyType(merged)

    def lookup(self, path: str, default: Any = _MISSING) -> Any:
        """Resolve a dotted path; raise KeyError if absent and no default given."""
        flat = self._values.get(path, _MISSING)
        if flat is not _MISSING and not isinstance(flat, Mapping):
            return flat

        current: Any = self._values
        for part in path.split("."):
            if isinstance(current, Mapping) and part in current:
                current = current[part]
            elif default is _MISSING:
                raise KeyError(path)
            else:
                return default

        if isinstance(current, Mapping):
            if default is _MISSING:
                raise KeyError(path)
            return default
        return current

    def __getitem__(self, path: str) -> Any:
        return self.lookup(path)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        try:
            self.lookup(path)
        except KeyError:
            return False
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ResolutionContext({dict(self._values)!r})"
