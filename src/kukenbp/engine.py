"""Render pipeline — resolve, validate inputs, compose and render in one call."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .composer import compose
from .context import ResolutionContext
from .documents import Document
from .manifest import Manifest, render
from .modules import resolve
from .registry import Registry

logger = logging.getLogger(__name__)


def render_blueprint(
    source: Document | Mapping[str, Any] | str | Path,
    values: Mapping[str, Any] | None = None,
    context: Mapping[str, Any] | ResolutionContext | None = None,
    *,
    registry: Registry | None = None,
) -> Manifest:
    """Render a blueprint into a Manifest.

    Steps run strictly in sequence and any failure is terminal: no partial
    manifest is ever returned.
    """
    blueprint = resolve(source, registry)
    logger.info("Rendering '%s' %s", blueprint.module, blueprint.version)
    return render(compose(blueprint, values, context))
