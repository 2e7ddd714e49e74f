"""Tests for kukenbp.inputs."""

from __future__ import annotations

from typing import Any, Literal

import pytest
from pydantic import SecretStr

from kukenbp.errors import InvalidInputDeclaration, InvalidInputValue, MissingRequiredInput
from kukenbp.inputs import (
    CheckboxInput,
    InputDecl,
    PasswordInput,
    PortInput,
    SelectInput,
    TextInput,
    _input_registry,
    input_type,
    normalize_values,
    parse_input,
)


@pytest.fixture(autouse=True)
def _clean_registry():
    saved = _input_registry.copy()
    yield
    _input_registry.clear()
    _input_registry.update(saved)


class TestParseInput:
    def test_text(self):
        decl = parse_input({"type": "text", "name": "Version", "label": "Version"})
        assert isinstance(decl, TextInput)
        assert decl.name == "Version"
        assert decl.default is None

    def test_port_with_default(self):
        decl = parse_input({"type": "port", "name": "Port", "label": "Port", "default": 5432})
        assert isinstance(decl, PortInput)
        assert decl.default == 5432

    def test_unknown_type_raises(self):
        with pytest.raises(InvalidInputDeclaration, match="unknown input type"):
            parse_input({"type": "slider", "name": "Level", "label": "Level"})

    @pytest.mark.parametrize("tag", [["text"], {"text": 1}, None, 3])
    def test_non_string_type_raises(self, tag):
        with pytest.raises(InvalidInputDeclaration, match="unknown input type"):
            parse_input({"type": tag, "name": "Level", "label": "Level"})

    def test_missing_label_raises(self):
        with pytest.raises(InvalidInputDeclaration, match="label") as exc_info:
            parse_input({"type": "text", "name": "Version"})
        assert exc_info.value.field == "Version"

    def test_unknown_attribute_raises(self):
        with pytest.raises(InvalidInputDeclaration, match="color"):
            parse_input({"type": "text", "name": "Version", "label": "V", "color": "red"})

    @pytest.mark.parametrize("name", ["x", "bad_name", "-lead", "trail-", "a" * 65, "has space"])
    def test_invalid_name_raises(self, name):
        with pytest.raises(InvalidInputDeclaration):
            parse_input({"type": "text", "name": name, "label": "X"})

    @pytest.mark.parametrize("name", ["ok", "server-port", "Version", "jvm-Flags2"])
    def test_valid_name(self, name):
        assert parse_input({"type": "text", "name": name, "label": "X"}).name == name

    def test_port_default_out_of_range_raises(self):
        with pytest.raises(InvalidInputDeclaration, match="invalid default"):
            parse_input({"type": "port", "name": "Port", "label": "Port", "default": 70000})

    def test_select_default_must_be_choice(self):
        with pytest.raises(InvalidInputDeclaration, match="invalid default"):
            parse_input(
                {
                    "type": "select",
                    "name": "Difficulty",
                    "label": "Difficulty",
                    "choices": ["easy", "hard"],
                    "default": "medium",
                }
            )

    def test_select_requires_choices(self):
        with pytest.raises(InvalidInputDeclaration):
            parse_input({"type": "select", "name": "Mode", "label": "Mode", "choices": []})

    def test_text_invalid_pattern_raises(self):
        with pytest.raises(InvalidInputDeclaration, match="invalid pattern"):
            parse_input({"type": "text", "name": "Tag", "label": "Tag", "pattern": "("})

    def test_already_parsed_passthrough(self):
        decl = TextInput(name="Version", label="Version")
        assert parse_input(decl) is decl

    def test_custom_input_type(self):
        @input_type("memory")
        class MemoryInput(InputDecl):
            type: Literal["memory"] = "memory"

            def validate_value(self, value: Any) -> int:
                if not isinstance(value, int) or value <= 0:
                    raise self._reject("expected a positive number of megabytes")
                return value

        decl = parse_input({"type": "memory", "name": "Heap", "label": "Heap", "default": 512})
        assert isinstance(decl, MemoryInput)
        assert decl.validate_value(1024) == 1024


class TestTextInput:
    def test_any_string(self):
        decl = TextInput(name="Motd", label="MOTD")
        assert decl.validate_value("hello world") == "hello world"

    def test_rejects_non_string(self):
        decl = TextInput(name="Motd", label="MOTD")
        with pytest.raises(InvalidInputValue, match="expected a string"):
            decl.validate_value(42)

    def test_length_bounds(self):
        decl = TextInput(name="Motd", label="MOTD", min_length=2, max_length=4)
        assert decl.validate_value("abc") == "abc"
        with pytest.raises(InvalidInputValue, match="shorter"):
            decl.validate_value("a")
        with pytest.raises(InvalidInputValue, match="longer"):
            decl.validate_value("abcde")

    def test_pattern(self):
        decl = TextInput(name="Version", label="Version", pattern=r"\d+(\.\d+)*")
        assert decl.validate_value("16.2") == "16.2"
        with pytest.raises(InvalidInputValue, match="pattern"):
            decl.validate_value("latest")


class TestPasswordInput:
    def test_normalizes_to_secret(self):
        decl = PasswordInput(name="Password", label="Password")
        value = decl.validate_value("hunter2")
        assert isinstance(value, SecretStr)
        assert value.get_secret_value() == "hunter2"

    def test_secret_never_in_repr(self):
        decl = PasswordInput(name="Password", label="Password", default="topsecret")
        assert "topsecret" not in repr(decl)
        assert "topsecret" not in repr(decl.validate_value("topsecret"))

    def test_min_length(self):
        decl = PasswordInput(name="Password", label="Password", min_length=8)
        with pytest.raises(InvalidInputValue, match="shorter"):
            decl.validate_value("short")

    def test_error_does_not_echo_value(self):
        decl = PasswordInput(name="Password", label="Password", min_length=20)
        with pytest.raises(InvalidInputValue) as exc_info:
            decl.validate_value("my-secret-value")
        assert "my-secret-value" not in str(exc_info.value)


class TestPortInput:
    def test_int_in_range(self):
        decl = PortInput(name="Port", label="Port")
        assert decl.validate_value(8080) == 8080

    def test_string_becomes_int(self):
        decl = PortInput(name="Port", label="Port")
        value = decl.validate_value("8080")
        assert value == 8080
        assert isinstance(value, int)

    @pytest.mark.parametrize("value", [0, 65536, 70000, -1, "70000"])
    def test_out_of_range(self, value):
        decl = PortInput(name="Port", label="Port")
        with pytest.raises(InvalidInputValue, match="outside"):
            decl.validate_value(value)

    @pytest.mark.parametrize(
        "value",
        ["http", "80.5", 80.0, True, None, "\u00b2", "\u0668\u0660\u0668\u0660", "1" * 5000],
    )
    def test_not_an_integer(self, value):
        decl = PortInput(name="Port", label="Port")
        with pytest.raises(InvalidInputValue):
            decl.validate_value(value)

    def test_bounds_inclusive(self):
        decl = PortInput(name="Port", label="Port")
        assert decl.validate_value(1) == 1
        assert decl.validate_value(65535) == 65535


class TestCheckboxInput:
    def test_bool(self):
        decl = CheckboxInput(name="Eula", label="Accept EULA")
        assert decl.validate_value(True) is True

    def test_string_forms(self):
        decl = CheckboxInput(name="Eula", label="Accept EULA")
        assert decl.validate_value("true") is True
        assert decl.validate_value("False") is False

    def test_rejects_other(self):
        decl = CheckboxInput(name="Eula", label="Accept EULA")
        with pytest.raises(InvalidInputValue):
            decl.validate_value("yes")


class TestSelectInput:
    def test_choice(self):
        decl = SelectInput(name="Mode", label="Mode", choices=["survival", "creative"])
        assert decl.validate_value("creative") == "creative"

    def test_not_a_choice(self):
        decl = SelectInput(name="Mode", label="Mode", choices=["survival", "creative"])
        with pytest.raises(InvalidInputValue, match="not one of"):
            decl.validate_value("hardcore")


class TestNormalizeValues:
    def _inputs(self):
        return [
            TextInput(name="Version", label="Version", default="16"),
            PasswordInput(name="Password", label="Password"),
            PortInput(name="Port", label="Port", default=5432),
        ]

    def test_supplied_and_defaults(self):
        values = normalize_values(self._inputs(), {"Password": "pw", "Port": "6543"})
        assert values["Version"] == "16"
        assert values["Password"].get_secret_value() == "pw"
        assert values["Port"] == 6543

    def test_declaration_order(self):
        values = normalize_values(self._inputs(), {"Password": "pw"})
        assert list(values) == ["Version", "Password", "Port"]

    def test_missing_required(self):
        with pytest.raises(MissingRequiredInput) as exc_info:
            normalize_values(self._inputs(), {})
        assert exc_info.value.field == "Password"

    def test_invalid_value_names_input(self):
        with pytest.raises(InvalidInputValue) as exc_info:
            normalize_values(self._inputs(), {"Password": "pw", "Port": 70000})
        assert exc_info.value.field == "Port"
        assert "70000" in exc_info.value.reason

    def test_undeclared_value_rejected(self):
        with pytest.raises(InvalidInputValue, match="no such input"):
            normalize_values(self._inputs(), {"Password": "pw", "Extra": "x"})

    def test_first_failure_in_declaration_order(self):
        inputs = [
            PortInput(name="Port", label="Port"),
            PasswordInput(name="Password", label="Password"),
        ]
        with pytest.raises(MissingRequiredInput) as exc_info:
            normalize_values(inputs, {})
        assert exc_info.value.field == "Port"

    def test_name_is_case_sensitive(self):
        with pytest.raises(InvalidInputValue):
            normalize_values(self._inputs(), {"password": "pw"})
