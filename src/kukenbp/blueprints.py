"""Blueprint models — the resolved, merged shape of a blueprint module."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, InstanceOf, field_validator

from .inputs import InputDecl
from .refs import InputRef, RuntimeRef, Template

ENV_KEY_PATTERN = r"^[A-Z][A-Z0-9]*(?:_[A-Z0-9]+)*$"


class EnvironmentVariable(BaseModel):
    """A declared environment variable; value is an unresolved template."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: str = Field(pattern=ENV_KEY_PATTERN)
    value: InstanceOf[Template]

    @field_validator("value", mode="before")
    @classmethod
    def _parse_value(cls, value: Any) -> Template:
        return Template.parse(value)


class DockerSpec(BaseModel):
    """Container image template."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    image: InstanceOf[Template]

    @field_validator("image", mode="before")
    @classmethod
    def _parse_image(cls, value: Any) -> Template:
        if not isinstance(value, (str, Template)):
            raise ValueError("image must be a string")
        return Template.parse(value)


class Build(BaseModel):
    """Build rules: image spec plus ordered environment declarations."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    docker: DockerSpec
    environment: tuple[EnvironmentVariable, ...] = Field(
        default=(), alias="environmentVariables"
    )

    def __iter__(self) -> Iterator[EnvironmentVariable]:
        return iter(self.environment)

    @property
    def refs(self) -> tuple[InputRef | RuntimeRef, ...]:
        """All references in scan order: image first, then env declarations."""
        found = list(self.docker.image.refs)
        for var in self.environment:
            found.extend(var.value.refs)
        return tuple(found)


class ResolvedBlueprint(BaseModel):
    """A blueprint whose amends chain has been merged and validated."""

    model_config = ConfigDict(frozen=True, extra="allow")

    module: str
    name: str
    version: str
    url: str
    description: str = ""
    inputs: tuple[InstanceOf[InputDecl], ...] = ()
    build: Build
    chain: tuple[str, ...] = ()

    def input(self, name: str) -> InputDecl | None:
        """Return the declared input with the given name, if any."""
        for decl in self.inputs:
            if decl.name == name:
                return decl
        return None
