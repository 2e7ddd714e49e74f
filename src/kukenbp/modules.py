"""Module resolver — walk a blueprint's amends chain, merge it, and validate its shape."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from . import hcl
from .blueprints import ResolvedBlueprint
from .documents import Document
from .errors import (
    CyclicInheritanceError,
    IncompleteBlueprintError,
    InvalidInputDeclaration,
    ResolutionError,
)
from .inputs import InputDecl, parse_input
from .registry import Registry
from .schema import Schema

logger = logging.getLogger(__name__)

MAX_CHAIN_DEPTH = 32

_DEFAULT_REGISTRY = Registry().freeze()


def _as_document(source: Document | Mapping[str, Any] | str | Path, registry: Registry) -> Document:
    """Coerce a source (document, parsed tree, location or file path) into a Document."""
    if isinstance(source, Document):
        return source
    if isinstance(source, Mapping):
        return Document.inline(source)

    found = registry.lookup(str(source))
    if isinstance(found, Schema):
        raise ResolutionError(f"'{source}' is a schema, not a blueprint", field="module")
    if found is not None:
        return found

    path = Path(source)
    if path.is_file():
        return hcl.load_document(path, context=registry.context)
    raise ResolutionError(f"Unknown blueprint: '{source}'", field="module")


def _lookup_parent(
    amends: str,
    child: Document,
    registry: Registry,
) -> tuple[Schema | Document, str]:
    """Find the parent named by an amends pointer; returns it with its canonical location."""
    found = registry.lookup(amends)
    if found is None and child.path is not None:
        candidate = (child.path.parent / amends).resolve()
        found = registry.lookup(str(candidate))
        if found is None and candidate.is_file():
            # read without caching; the registry stays read-only
            found = hcl.load_document(candidate, context=registry.context)

    if found is None:
        raise ResolutionError(
            f"'{child.location}' amends unknown location '{amends}'", field="amends"
        )
    if isinstance(found, Schema):
        return found, found.name
    return found, found.location


def _walk_chain(
    child: Document,
    registry: Registry,
) -> tuple[list[Document], Schema, list[str]]:
    """Follow amends pointers up to the root schema.

    Returns the documents root-first, the root schema, and the visited
    locations child-first.
    """
    documents = [child]
    chain = [child.location]
    current = child

    while True:
        amends = current.amends
        if amends is None:
            raise IncompleteBlueprintError("amends")
        if not isinstance(amends, str) or not amends:
            raise ResolutionError(
                f"'{current.location}': amends must be a location string", field="amends"
            )

        parent, location = _lookup_parent(amends, current, registry)
        if location in chain:
            raise CyclicInheritanceError([*chain, location])
        chain.append(location)
        if len(chain) > MAX_CHAIN_DEPTH:
            raise ResolutionError(
                f"Inheritance chain deeper than {MAX_CHAIN_DEPTH}: {' -> '.join(chain)}",
                field="amends",
            )
        logger.debug("'%s' amends '%s'", current.location, location)

        if isinstance(parent, Schema):
            documents.reverse()
            return documents, parent, chain
        documents.append(parent)
        current = parent


def _merge_inputs(
    inherited: list[InputDecl],
    declared: Any,
    document: Document,
) -> list[InputDecl]:
    """Append declarations in order; a redeclared name replaces the inherited one in place."""
    if not isinstance(declared, list):
        raise ResolutionError(f"'{document.location}': inputs must be a list", field="inputs")

    own: list[InputDecl] = []
    seen: set[str] = set()
    for raw in declared:
        if not isinstance(raw, (Mapping, InputDecl)):
            raise InvalidInputDeclaration(
                f"'{document.location}': input declarations must be mappings", field="inputs"
            )
        decl = parse_input(raw)
        if decl.name in seen:
            raise InvalidInputDeclaration(
                f"'{document.location}': duplicate input '{decl.name}'", field=decl.name
            )
        seen.add(decl.name)
        own.append(decl)

    merged = list(inherited)
    index = {decl.name: i for i, decl in enumerate(merged)}
    for decl in own:
        if decl.name in index:
            logger.debug("Input '%s' overridden by '%s'", decl.name, document.location)
            merged[index[decl.name]] = decl
        else:
            index[decl.name] = len(merged)
            merged.append(decl)
    return merged


def _merge_build(
    inherited: dict[str, Any],
    declared: Any,
    document: Document,
) -> dict[str, Any]:
    """Merge docker settings key by key and concatenate environment declarations."""
    if not isinstance(declared, Mapping):
        raise ResolutionError(f"'{document.location}': build must be a mapping", field="build")

    merged = dict(inherited)
    for key, value in declared.items():
        if key == "docker" and isinstance(value, Mapping):
            merged["docker"] = {**merged.get("docker", {}), **value}
        elif key == "environmentVariables":
            if not isinstance(value, list):
                raise ResolutionError(
                    f"'{document.location}': environmentVariables must be a list",
                    field="build",
                )
            merged["environmentVariables"] = [*merged.get("environmentVariables", []), *value]
        else:
            merged[key] = value
    return merged


def _merge(documents: list[Document], schema: Schema) -> dict[str, Any]:
    """Merge documents root-first, child values overriding parent values field by field."""
    merged: dict[str, Any] = {}
    for document in documents:
        for key, value in document.data.items():
            if key == "amends":
                continue
            if key not in schema:
                raise ResolutionError(
                    f"'{document.location}': unknown field '{key}' for schema '{schema.name}'",
                    field=key,
                )
            if key == "inputs":
                merged["inputs"] = _merge_inputs(merged.get("inputs", []), value, document)
            elif key == "build":
                merged["build"] = _merge_build(merged.get("build", {}), value, document)
            else:
                merged[key] = value

    for name, contract in schema.contracts.items():
        if name not in merged and not contract.required and contract.default is not None:
            merged[name] = contract.default

    for name in schema.required:
        if name not in merged:
            raise IncompleteBlueprintError(name)
    return merged


def _validate(merged: dict[str, Any], schema: Schema, chain: list[str]) -> ResolvedBlueprint:
    for field, value in merged.items():
        if reason := schema.check(field, value):
            raise ResolutionError(f"Invalid field '{field}': {reason}", field=field)

    try:
        return ResolvedBlueprint.model_validate({**merged, "chain": tuple(chain)})
    except ValidationError as exc:
        err = exc.errors()[0]
        loc = ".".join(str(p) for p in err["loc"])
        raise ResolutionError(
            f"Invalid field '{loc}': {err['msg']}", field=str(err["loc"][0])
        ) from exc


def resolve(
    source: Document | Mapping[str, Any] | str | Path,
    registry: Registry | None = None,
) -> ResolvedBlueprint:
    """Resolve a blueprint's inheritance chain into a validated ResolvedBlueprint.

    ``source`` may be a Document, an already-parsed tree, a registered
    location or module name, or a path to an HCL file.
    """
    registry = registry if registry is not None else _DEFAULT_REGISTRY
    child = _as_document(source, registry)
    logger.debug("Resolving blueprint '%s'", child.location)

    documents, schema, chain = _walk_chain(child, registry)
    merged = _merge(documents, schema)
    blueprint = _validate(merged, schema, chain)

    logger.debug(
        "Resolved '%s' via %s with %d input(s)",
        blueprint.module,
        " -> ".join(chain),
        len(blueprint.inputs),
    )
    return blueprint
