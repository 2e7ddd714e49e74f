"""HCL loading engine — parse .hcl files into blueprint documents and schemas."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

import hcl2
import jinja2
from lark.exceptions import LarkError

from .documents import Document
from .errors import SchemaLoadError
from .fixtures import Fixture
from .schema import Schema, load_schema

logger = logging.getLogger(__name__)


def load(
    file: Path,
    *,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Load and parse a single HCL file, rendering Jinja2 templates with context."""
    text = file.read_text()
    ctx = context if context is not None else {}
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    try:
        template = env.from_string(text)
        text = template.render(ctx)
    except jinja2.TemplateError as exc:
        raise SchemaLoadError(f"{file}: {exc}") from exc
    try:
        return hcl2.loads(text)
    except LarkError as exc:
        raise SchemaLoadError(f"{file}: {exc}") from exc


def _single(blocks: Any, name: str, where: str) -> dict[str, Any]:
    """Return the only instance of a repeatable HCL block."""
    if isinstance(blocks, dict):
        return blocks
    if not isinstance(blocks, list) or len(blocks) != 1:
        raise SchemaLoadError(f"{where}: expected exactly one '{name}' block", field=name)
    return blocks[0]


def _decode_inputs(blocks: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Flatten input blocks into canonical declarations.

    HCL2 structure for input blocks:
        {"input": [{"port": {"Port": {"label": "Port"}}}, ...]}
    """
    inputs: list[dict[str, Any]] = []
    for block in blocks:
        for input_type, named in block.items():
            for name, attrs in named.items():
                inputs.append({"type": input_type, "name": name, **attrs})
    return inputs


def _decode_build(block: dict[str, Any], where: str) -> dict[str, Any]:
    build: dict[str, Any] = {}
    for key, value in block.items():
        if key == "docker":
            build["docker"] = _single(value, "docker", where)
        elif key == "env":
            env: list[dict[str, Any]] = []
            for env_block in value:
                # Each env_block is {"KEY": {"value": ...}}
                for env_key, attrs in env_block.items():
                    if "value" not in attrs:
                        raise SchemaLoadError(
                            f"{where}: env '{env_key}' has no value", field=env_key
                        )
                    env.append({"key": env_key, "value": attrs["value"]})
            build["environmentVariables"] = env
        else:
            build[key] = value
    return build


def _decode_fixtures(blocks: list[dict[str, Any]], where: str) -> tuple[Fixture, ...]:
    fixtures: list[Fixture] = []
    for block in blocks:
        for name, attrs in block.items():
            attrs = dict(attrs)
            if "expect" in attrs:
                attrs["expect"] = _single(attrs["expect"], "expect", where)
            try:
                fixtures.append(Fixture.model_validate({"name": name, **attrs}))
            except ValueError as exc:
                raise SchemaLoadError(f"{where}: invalid test '{name}': {exc}", field=name) from exc
    return tuple(fixtures)


def decode_blueprint(module: str, block: dict[str, Any], path: Path) -> Document:
    """Decode a blueprint block into a canonical Document."""
    where = f"{path}: blueprint '{module}'"
    data: dict[str, Any] = {"module": module}
    fixtures: tuple[Fixture, ...] = ()
    for key, value in block.items():
        if key == "input":
            data["inputs"] = _decode_inputs(value)
        elif key == "build":
            data["build"] = _decode_build(_single(value, "build", where), where)
        elif key == "test":
            fixtures = _decode_fixtures(value, where)
        else:
            data[key] = value
    data.setdefault("inputs", [])
    logger.debug("Decoded blueprint '%s' from %s", module, path)
    return Document(location=str(path.resolve()), data=data, path=path.resolve(), fixtures=fixtures)


def decode_schema(name: str, block: dict[str, Any]) -> Schema:
    """Decode a schema block into a Schema.

    HCL2 structure for schema blocks:
        {"schema": [{"kuken:Blueprint": {"field": [{"name": {"shape": "string"}}]}}]}
    """
    fields: dict[str, Any] = {}
    for field_block in block.get("field", []):
        fields.update(field_block)
    return load_schema({"name": name, "fields": fields})


def load_file(
    file: Path,
    *,
    context: dict[str, Any] | None = None,
) -> tuple[list[Schema], list[Document]]:
    """Load all schemas and blueprints declared in a single HCL file."""
    data = load(file, context=context)
    schemas = [
        decode_schema(name, block)
        for schema_block in data.get("schema", [])
        for name, block in schema_block.items()
    ]
    documents = [
        decode_blueprint(module, block, file)
        for bp_block in data.get("blueprint", [])
        for module, block in bp_block.items()
    ]
    if len(documents) > 1:
        # several blueprints share a file; only their module names stay unique
        documents = [replace(doc, location=f"{doc.location}#{doc.module}") for doc in documents]
    logger.debug(
        "Loaded %d schema(s) and %d blueprint(s) from %s", len(schemas), len(documents), file
    )
    return schemas, documents


def load_document(
    file: Path,
    *,
    context: dict[str, Any] | None = None,
) -> Document:
    """Load a file that declares exactly one blueprint."""
    _, documents = load_file(file, context=context)
    if len(documents) != 1:
        raise SchemaLoadError(
            f"{file}: expected exactly one blueprint, found {len(documents)}", field="blueprint"
        )
    return documents[0]
