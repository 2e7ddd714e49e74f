"""Manifest model — the rendered, immutable deployment descriptor."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from .blueprints import ENV_KEY_PATTERN
from .errors import RenderError
from .inputs import PORT_MAX, PORT_MIN

logger = logging.getLogger(__name__)

_ENV_KEY = re.compile(ENV_KEY_PATTERN)


class PortBinding(BaseModel):
    """A resolved port, named after the input that declared it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    port: int = Field(ge=PORT_MIN, le=PORT_MAX)


class EnvEntry(BaseModel):
    """A resolved environment variable; secret values stay wrapped."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: str
    value: str | SecretStr

    @property
    def secret(self) -> bool:
        return isinstance(self.value, SecretStr)

    def reveal(self) -> str:
        """Return the true value, unwrapping secrets."""
        if isinstance(self.value, SecretStr):
            return self.value.get_secret_value()
        return self.value


class ComposedBuild(BaseModel):
    """Output of the build composer, not yet checked against the descriptor shape."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    module: str
    version: str
    image: str
    env: tuple[EnvEntry, ...] = ()
    ports: tuple[PortBinding, ...] = ()


class Manifest(BaseModel):
    """The final deployment descriptor handed to the deployment collaborator.

    ``repr()`` and the default serialization redact secret values; only
    ``environment()`` and ``to_dict(reveal=True)`` expose them.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    image: str
    env: tuple[EnvEntry, ...] = ()
    ports: tuple[PortBinding, ...] = ()

    def environment(self) -> dict[str, str]:
        """The ordered environment assembly, secrets revealed."""
        return {entry.key: entry.reveal() for entry in self.env}

    def to_dict(self, *, reveal: bool = False) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        if reveal:
            data["env"] = [{"key": e.key, "value": e.reveal()} for e in self.env]
        return data

    def to_json(self, *, reveal: bool = False, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(reveal=reveal), indent=indent)


def render(composed: ComposedBuild) -> Manifest:
    """Check a composed build against the descriptor shape and freeze it."""
    if not composed.image.strip():
        raise RenderError("Rendered image is empty", field="image")

    seen: set[str] = set()
    for entry in composed.env:
        if _ENV_KEY.fullmatch(entry.key) is None:
            raise RenderError(f"Malformed environment key: '{entry.key}'", field=entry.key)
        if entry.key in seen:
            raise RenderError(f"Duplicate environment key: '{entry.key}'", field=entry.key)
        seen.add(entry.key)

    manifest = Manifest(image=composed.image, env=composed.env, ports=composed.ports)
    logger.info(
        "Rendered '%s' %s: image=%s, %d env, %d port(s)",
        composed.module,
        composed.version,
        manifest.image,
        len(manifest.env),
        len(manifest.ports),
    )
    return manifest
