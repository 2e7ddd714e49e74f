"""Build composer — turn a resolved blueprint plus inputs into a concrete build."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import SecretStr

from .blueprints import ResolvedBlueprint
from .context import ResolutionContext
from .errors import RenderError
from .inputs import PortInput, normalize_values
from .manifest import ComposedBuild, EnvEntry, PortBinding
from .refs import ReferenceResolver

logger = logging.getLogger(__name__)


def _env_value(value: Any) -> str | SecretStr:
    if isinstance(value, SecretStr):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def compose(
    blueprint: ResolvedBlueprint,
    values: Mapping[str, Any] | None = None,
    context: Mapping[str, Any] | ResolutionContext | None = None,
) -> ComposedBuild:
    """Compose the concrete image, environment and port bindings.

    Environment variables are deduplicated by key: the last declaration's
    value wins, placed at the position of the key's first declaration.
    Every reference is checked before any is resolved (image first, then
    environment declarations in order) so the first unresolved one is always
    the one reported and no runtime callable runs for a failed render.
    """
    normalized = normalize_values(blueprint.inputs, values or {})
    resolver = ReferenceResolver(normalized, context)
    resolver.check(blueprint.build.refs)

    image = resolver.resolve(blueprint.build.docker.image)
    if isinstance(image, SecretStr):
        raise RenderError("Image must not contain secret inputs", field="image")

    # dict assignment keeps the first insertion position for repeated keys
    env: dict[str, str | SecretStr] = {}
    for var in blueprint.build:
        value = _env_value(resolver.resolve(var.value))
        if var.key in env:
            logger.debug("Environment variable '%s' overridden by a later declaration", var.key)
        env[var.key] = value

    ports = tuple(
        PortBinding(name=decl.name, port=normalized[decl.name])
        for decl in blueprint.inputs
        if isinstance(decl, PortInput)
    )

    logger.debug("Composed '%s' with %d environment variable(s)", blueprint.module, len(env))
    return ComposedBuild(
        module=blueprint.module,
        version=blueprint.version,
        image=_env_value(image),
        env=tuple(EnvEntry(key=key, value=value) for key, value in env.items()),
        ports=ports,
    )
