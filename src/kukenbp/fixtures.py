"""Declared blueprint test fixtures and their runner."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .blueprints import ResolvedBlueprint
from .composer import compose
from .errors import RenderError
from .manifest import render

logger = logging.getLogger(__name__)


class Expectation(BaseModel):
    """What a fixture expects the render to produce (or fail with)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    image: str | None = None
    env: dict[str, Any] = Field(default_factory=dict)
    ports: dict[str, int] = Field(default_factory=dict)
    error: str | None = None


class Fixture(BaseModel):
    """A named set of inputs and runtime context with an expected outcome."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    inputs: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)
    expect: Expectation = Field(default_factory=Expectation)


@dataclass
class FixtureResult:
    """Outcome of running a single fixture."""

    fixture: Fixture
    failures: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def run_fixture(blueprint: ResolvedBlueprint, fixture: Fixture) -> FixtureResult:
    """Render the blueprint with the fixture's inputs and compare the outcome."""
    result = FixtureResult(fixture=fixture)
    expect = fixture.expect
    logger.debug("Running fixture '%s' against '%s'", fixture.name, blueprint.module)

    try:
        manifest = render(compose(blueprint, fixture.inputs, fixture.context))
    except RenderError as exc:
        error_name = type(exc).__name__
        if expect.error is None:
            result.failures.append(f"unexpected {error_name}: {exc}")
        elif expect.error != error_name:
            result.failures.append(f"expected {expect.error}, got {error_name}: {exc}")
        return result

    if expect.error is not None:
        result.failures.append(f"expected {expect.error}, but render succeeded")
        return result

    if expect.image is not None and manifest.image != expect.image:
        result.failures.append(f"image: expected '{expect.image}', got '{manifest.image}'")

    env = manifest.environment()
    for key, expected in expect.env.items():
        if key not in env:
            result.failures.append(f"env {key}: missing")
        elif env[key] != _stringify(expected):
            result.failures.append(f"env {key}: value differs from expectation")

    ports = {binding.name: binding.port for binding in manifest.ports}
    for name, expected in expect.ports.items():
        if ports.get(name) != expected:
            result.failures.append(f"port {name}: expected {expected}, got {ports.get(name)}")

    return result


def run_fixtures(
    blueprint: ResolvedBlueprint,
    fixtures: tuple[Fixture, ...] | list[Fixture],
) -> list[FixtureResult]:
    """Run every fixture in declaration order."""
    results = [run_fixture(blueprint, fixture) for fixture in fixtures]
    failed = sum(1 for r in results if not r.passed)
    logger.info("Ran %d fixture(s) for '%s': %d failed", len(results), blueprint.module, failed)
    return results
