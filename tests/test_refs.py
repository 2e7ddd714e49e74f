"""Tests for kukenbp.refs — value templates and reference resolution."""

import pytest
from pydantic import SecretStr

from kukenbp.context import ResolutionContext
from kukenbp.errors import UnresolvedReferenceError
from kukenbp.refs import InputRef, LiteralPart, ReferenceResolver, RuntimeRef, Template


class TestTemplateParse:
    def test_plain_string(self):
        t = Template.parse("postgres")
        assert t.parts == (LiteralPart("postgres"),)
        assert t.refs == ()

    def test_input_reference(self):
        t = Template.parse("postgres:${Version}")
        assert t.parts == (LiteralPart("postgres:"), InputRef("Version"))

    def test_runtime_reference(self):
        t = Template.parse("${refs.instance.name}")
        assert t.parts == (RuntimeRef("instance.name"),)

    def test_whitespace_in_reference_is_trimmed(self):
        t = Template.parse("${ Version }")
        assert t.parts == (InputRef("Version"),)

    def test_mixed_references_keep_order(self):
        t = Template.parse("${refs.instance.id}-${Name}-x")
        assert t.refs == (RuntimeRef("instance.id"), InputRef("Name"))

    def test_escaped_dollar(self):
        """$${...} should produce literal ${...}."""
        t = Template.parse("$${Version}")
        assert t.parts == (LiteralPart("${Version}"),)
        assert t.refs == ()

    def test_double_brace_passthrough(self):
        t = Template.parse("${{ github.token }}")
        assert t.refs == ()

    def test_non_string_literal(self):
        t = Template.parse(25565)
        assert t.parts == (LiteralPart(25565),)

    def test_empty_string(self):
        assert Template.parse("").parts == ()

    def test_empty_runtime_path_raises(self):
        with pytest.raises(ValueError, match="empty runtime reference"):
            Template.parse("${refs.}")

    def test_str_round_trips_escape(self):
        assert str(Template.parse("a-$${b}-${C}-${refs.x}")) == "a-$${b}-${C}-${refs.x}"

    def test_parse_template_is_identity(self):
        t = Template.parse("x")
        assert Template.parse(t) is t


class TestReferenceResolver:
    def test_input_reference(self):
        r = ReferenceResolver({"Version": "16"})
        assert r.resolve(Template.parse("postgres:${Version}")) == "postgres:16"

    def test_single_reference_preserves_type(self):
        r = ReferenceResolver({"Port": 8080})
        assert r.resolve(Template.parse("${Port}")) == 8080

    def test_embedded_reference_stringifies(self):
        r = ReferenceResolver({"Port": 8080, "Eula": True})
        assert r.resolve(Template.parse("${Port}/${Eula}")) == "8080/true"

    def test_literal_only(self):
        r = ReferenceResolver({})
        assert r.resolve(Template.parse("plain")) == "plain"
        assert r.resolve(Template.parse(42)) == 42

    def test_runtime_reference_flat_context(self):
        r = ReferenceResolver({}, {"instance.name": "db-1"})
        assert r.resolve(Template.parse("${refs.instance.name}")) == "db-1"

    def test_runtime_reference_nested_context(self):
        r = ReferenceResolver({}, {"instance": {"id": 7}})
        assert r.resolve(Template.parse("id-${refs.instance.id}")) == "id-7"

    def test_runtime_reference_accepts_resolution_context(self):
        ctx = ResolutionContext({"instance.name": "db-1"})
        r = ReferenceResolver({}, ctx)
        assert r.resolve(Template.parse("${refs.instance.name}")) == "db-1"

    def test_runtime_reference_never_reads_inputs(self):
        r = ReferenceResolver({"instance.name": "from-inputs"})
        with pytest.raises(UnresolvedReferenceError, match="refs.instance.name"):
            r.resolve(Template.parse("${refs.instance.name}"))

    def test_input_reference_never_reads_context(self):
        r = ReferenceResolver({}, {"Version": "16"})
        with pytest.raises(UnresolvedReferenceError, match="Version"):
            r.resolve(Template.parse("${Version}"))

    def test_callable_context_value(self):
        r = ReferenceResolver({}, {"instance.id": lambda: "abc"})
        assert r.resolve(Template.parse("${refs.instance.id}")) == "abc"

    def test_first_unresolved_reported(self):
        r = ReferenceResolver({"Known": "x"})
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            r.resolve(Template.parse("${Known}-${refs.instance.id}-${Missing}"))
        assert exc_info.value.field == "refs.instance.id"

    def test_secret_single_reference_stays_secret(self):
        r = ReferenceResolver({"Password": SecretStr("pw")})
        value = r.resolve(Template.parse("${Password}"))
        assert isinstance(value, SecretStr)

    def test_secret_taints_composite_value(self):
        r = ReferenceResolver({"User": "app", "Password": SecretStr("pw")})
        value = r.resolve(Template.parse("postgres://${User}:${Password}@db"))
        assert isinstance(value, SecretStr)
        assert value.get_secret_value() == "postgres://app:pw@db"
        assert "pw@" not in repr(value)

    def test_check_reports_first_missing_in_order(self):
        resolver = ReferenceResolver({"Name": "db"}, {"instance.id": lambda: 1 / 0})
        refs = Template.parse("${Name}-${refs.instance.id}-${refs.node}-${Other}").refs
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            resolver.check(refs)
        assert exc_info.value.field == "refs.node"

    def test_check_passes_when_all_present(self):
        resolver = ReferenceResolver({"Name": "db"}, {"instance": {"id": 7}})
        resolver.check(Template.parse("${Name}:${refs.instance.id}").refs)
