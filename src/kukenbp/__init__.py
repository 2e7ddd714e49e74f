"""kukenbp - A schema-validated blueprint engine that renders Kuken deployment manifests."""

from .blueprints import Build as Build
from .blueprints import DockerSpec as DockerSpec
from .blueprints import EnvironmentVariable as EnvironmentVariable
from .blueprints import ResolvedBlueprint as ResolvedBlueprint
from .composer import compose as compose
from .context import ResolutionContext as ResolutionContext
from .documents import Document as Document
from .engine import render_blueprint as render_blueprint
from .errors import BlueprintError as BlueprintError
from .errors import CyclicInheritanceError as CyclicInheritanceError
from .errors import IncompleteBlueprintError as IncompleteBlueprintError
from .errors import InvalidInputDeclaration as InvalidInputDeclaration
from .errors import InvalidInputValue as InvalidInputValue
from .errors import MissingRequiredInput as MissingRequiredInput
from .errors import RenderError as RenderError
from .errors import ResolutionError as ResolutionError
from .errors import SchemaLoadError as SchemaLoadError
from .errors import UnresolvedReferenceError as UnresolvedReferenceError
from .inputs import InputDecl as InputDecl
from .inputs import input_type as input_type
from .manifest import Manifest as Manifest
from .manifest import render as render
from .modules import resolve as resolve
from .registry import Registry as Registry
from .schema import Schema as Schema
from .schema import load_schema as load_schema
