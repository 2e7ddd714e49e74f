"""Registry — an indexed, read-only-after-init set of schemas and blueprint documents."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from . import hcl
from .documents import Document
from .errors import BlueprintError
from .schema import BASE_SCHEMA, Schema, load_schema

logger = logging.getLogger(__name__)


class Registry(Mapping[str, Schema | Document]):
    """Schemas and blueprint documents keyed by location.

    The registry is populated once (``add_schema``, ``add_document``, ``load``,
    ``scan``) and then frozen; after ``freeze()`` it may be shared by any
    number of concurrent renders.
    """

    def __init__(
        self,
        *,
        context: dict[str, Any] | None = None,
        include_base: bool = True,
    ) -> None:
        self._context = dict(context or {})
        self._schemas: dict[str, Schema] = {}
        self._documents: dict[str, Document] = {}
        self._modules: dict[str, str] = {}
        self._frozen = False
        if include_base:
            self.add_schema(BASE_SCHEMA)

    @property
    def context(self) -> dict[str, Any]:
        """Template context used when loading HCL sources."""
        return dict(self._context)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_writable(self) -> None:
        if self._frozen:
            raise RuntimeError("Registry is frozen")

    def add_schema(self, schema: Schema | Mapping[str, Any]) -> Schema:
        """Register a schema under its name."""
        self._check_writable()
        if not isinstance(schema, Schema):
            schema = load_schema(schema)
        if schema.name in self._schemas or schema.name in self._documents:
            raise BlueprintError(f"Duplicate schema: '{schema.name}'", field=schema.name)
        logger.debug("Registered schema '%s'", schema.name)
        self._schemas[schema.name] = schema
        return schema

    def add_document(self, document: Document | Mapping[str, Any]) -> Document:
        """Register a blueprint document under its location and module name."""
        self._check_writable()
        if not isinstance(document, Document):
            document = Document.inline(document)
        location = document.location
        if location in self._documents or location in self._schemas:
            raise BlueprintError(f"Duplicate blueprint: '{location}'", field=location)
        module = document.module
        if module is not None and module != location:
            if module in self._modules:
                raise BlueprintError(f"Duplicate blueprint module: '{module}'", field=module)
            self._modules[module] = location
        logger.debug("Registered blueprint '%s'", location)
        self._documents[location] = document
        return document

    def load(self, path: str | Path) -> None:
        """Load every schema and blueprint declared in a single HCL file."""
        path = Path(path)
        schemas, documents = hcl.load_file(path, context=self._context)
        for schema in schemas:
            self.add_schema(schema)
        for document in documents:
            self.add_document(document)

    def scan(self, path: str | Path, *, recurse: bool = True) -> None:
        """Load all .hcl files from a directory, in sorted order."""
        path = Path(path)
        pattern = "**/*.hcl" if recurse else "*.hcl"
        files = sorted(path.glob(pattern))
        if not files:
            logger.warning("No .hcl files found in %s", path)
        logger.debug("Scanning %s: found %d file(s)", path, len(files))
        for file in files:
            self.load(file)

    def freeze(self) -> Registry:
        """Disallow further writes and return self."""
        self._frozen = True
        return self

    def lookup(self, location: str) -> Schema | Document | None:
        """Find a schema or document by location or blueprint module name."""
        if location in self._schemas:
            return self._schemas[location]
        if location in self._documents:
            return self._documents[location]
        if location in self._modules:
            return self._documents[self._modules[location]]
        return None

    def __getitem__(self, location: str) -> Schema | Document:
        found = self.lookup(location)
        if found is None:
            raise KeyError(location)
        return found

    def __contains__(self, location: object) -> bool:
        return isinstance(location, str) and self.lookup(location) is not None

    def __iter__(self) -> Iterator[str]:
        yield from self._schemas
        yield from self._documents

    def __len__(self) -> int:
        return len(self._schemas) + len(self._documents)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return (
            f"Registry(schemas={len(self._schemas)}, blueprints={len(self._documents)}, {state})"
        )
