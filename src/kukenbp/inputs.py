"""Input declarations, the input type registry, and value validation."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError

from .errors import InvalidInputDeclaration, InvalidInputValue, MissingRequiredInput

logger = logging.getLogger(__name__)

NAME_PATTERN = r"^[A-Za-z][A-Za-z0-9]*(?:-[A-Za-z0-9]+)*$"

PORT_MIN = 1
PORT_MAX = 65535

# -- Input Type Registry --

_input_registry: dict[str, type[InputDecl]] = {}


def input_type(tag: str):
    """Register an InputDecl class under its type tag."""

    def decorator(cls):
        _input_registry[tag] = cls
        return cls

    return decorator


# -- Input Declarations --


class InputDecl(BaseModel, ABC):
    """Base class for all input declarations."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str
    name: str = Field(min_length=2, max_length=64, pattern=NAME_PATTERN)
    label: str
    description: str = ""
    default: Any = None

    def validate_declaration(self) -> None:
        """Check declaration-time constraints, including the default value."""
        if self.default is None:
            return
        try:
            self.validate_value(self.default)
        except InvalidInputValue as exc:
            raise InvalidInputDeclaration(
                f"Input '{self.name}': invalid default: {exc.reason}", field=self.name
            ) from exc

    @abstractmethod
    def validate_value(self, value: Any) -> Any:
        """Return the normalized value or raise InvalidInputValue."""

    def _reject(self, reason: str) -> InvalidInputValue:
        return InvalidInputValue(self.name, reason)


@input_type("text")
class TextInput(InputDecl):
    """Free-form string with optional length and pattern constraints."""

    type: Literal["text"] = "text"
    default: str | None = None
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)
    pattern: str | None = None

    def validate_declaration(self) -> None:
        if self.pattern is not None:
            try:
                re.compile(self.pattern)
            except re.error as exc:
                raise InvalidInputDeclaration(
                    f"Input '{self.name}': invalid pattern: {exc}", field=self.name
                ) from exc
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise InvalidInputDeclaration(
                f"Input '{self.name}': min_length exceeds max_length", field=self.name
            )
        super().validate_declaration()

    def validate_value(self, value: Any) -> str:
        if not isinstance(value, str):
            raise self._reject(f"expected a string, got {type(value).__name__}")
        if self.min_length is not None and len(value) < self.min_length:
            raise self._reject(f"shorter than {self.min_length} characters")
        if self.max_length is not None and len(value) > self.max_length:
            raise self._reject(f"longer than {self.max_length} characters")
        if self.pattern is not None and re.fullmatch(self.pattern, value) is None:
            raise self._reject(f"does not match pattern '{self.pattern}'")
        return value


@input_type("password")
class PasswordInput(InputDecl):
    """A string that is never echoed; normalized to a SecretStr."""

    type: Literal["password"] = "password"
    default: SecretStr | None = None
    min_length: int | None = Field(default=None, ge=0)

    def validate_value(self, value: Any) -> SecretStr:
        if isinstance(value, SecretStr):
            value = value.get_secret_value()
        if not isinstance(value, str):
            raise self._reject(f"expected a string, got {type(value).__name__}")
        if self.min_length is not None and len(value) < self.min_length:
            raise self._reject(f"shorter than {self.min_length} characters")
        return SecretStr(value)


@input_type("port")
class PortInput(InputDecl):
    """A TCP/UDP port number."""

    type: Literal["port"] = "port"
    default: int | str | None = None

    def validate_value(self, value: Any) -> int:
        if isinstance(value, bool):
            raise self._reject("expected an integer, got bool")
        if isinstance(value, str):
            text = value.strip()
            if not (text.isascii() and text.isdigit()):
                raise self._reject(f"'{value}' is not an integer")
            try:
                value = int(text)
            except ValueError:
                raise self._reject(f"'{value}' is not an integer") from None
        if not isinstance(value, int):
            raise self._reject(f"expected an integer, got {type(value).__name__}")
        if not PORT_MIN <= value <= PORT_MAX:
            raise self._reject(f"{value} is outside [{PORT_MIN}, {PORT_MAX}]")
        return value


@input_type("checkbox")
class CheckboxInput(InputDecl):
    """A boolean toggle."""

    type: Literal["checkbox"] = "checkbox"
    default: bool | None = None

    def validate_value(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise self._reject(f"expected a boolean, got {value!r}")


@input_type("select")
class SelectInput(InputDecl):
    """One value out of a declared list of choices."""

    type: Literal["select"] = "select"
    default: str | None = None
    choices: list[str] = Field(min_length=1)

    def validate_declaration(self) -> None:
        if len(set(self.choices)) != len(self.choices):
            raise InvalidInputDeclaration(
                f"Input '{self.name}': duplicate choices", field=self.name
            )
        super().validate_declaration()

    def validate_value(self, value: Any) -> str:
        if value not in self.choices:
            raise self._reject(f"{value!r} is not one of {self.choices}")
        return value


# -- Parsing & Normalization --


def parse_input(data: Mapping[str, Any] | InputDecl) -> InputDecl:
    """Decode a raw input declaration into its registered variant and validate it."""
    if isinstance(data, InputDecl):
        data.validate_declaration()
        return data

    name = data.get("name")
    tag = data.get("type")
    if not isinstance(tag, str) or tag not in _input_registry:
        raise InvalidInputDeclaration(
            f"Input '{name}': unknown input type '{tag}'", field=name
        )
    input_cls = _input_registry[tag]
    try:
        decl = input_cls.model_validate(dict(data))
    except ValidationError as exc:
        err = exc.errors()[0]
        loc = ".".join(str(p) for p in err["loc"])
        raise InvalidInputDeclaration(
            f"Input '{name}': {loc}: {err['msg']}", field=name
        ) from exc
    logger.debug("Decoded input '%s' -> %s", decl.name, input_cls.__name__)
    decl.validate_declaration()
    return decl


def normalize_values(
    inputs: Sequence[InputDecl],
    supplied: Mapping[str, Any],
) -> dict[str, Any]:
    """Validate supplied values against declared inputs, filling defaults.

    Inputs are processed in declaration order, so the first failing input is
    the one reported. Values for undeclared inputs are rejected.
    """
    declared = {decl.name for decl in inputs}
    for name in supplied:
        if name not in declared:
            raise InvalidInputValue(name, "no such input is declared")

    values: dict[str, Any] = {}
    for decl in inputs:
        if name_supplied := decl.name in supplied:
            raw = supplied[decl.name]
        elif decl.default is not None:
            raw = decl.default
        else:
            raise MissingRequiredInput(decl.name)
        values[decl.name] = decl.validate_value(raw)
        logger.debug(
            "Input '%s' = %r (%s)",
            decl.name,
            values[decl.name],
            "supplied" if name_supplied else "default",
        )
    return values
