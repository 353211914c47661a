import pytest

from conftest import FIXTURES
from wadlgen.config import GenerationConfig
from wadlgen.errors import NamingCollision
from wadlgen.generator.unify import field_signature, unify
from wadlgen.parser.loader import FileLoader
from wadlgen.parser.resolve import resolve
from wadlgen.parser.wadl import parse_file, parse_string

NS = 'xmlns="http://wadl.dev.java.net/2009/02"'


def _table(body: str, config: GenerationConfig | None = None):
    resolved = resolve(parse_string(f"<application {NS}>{body}</application>"))
    return resolved, unify(resolved, config)


def _json(*params: str) -> str:
    return '<representation mediaType="application/json">' + "".join(params) + "</representation>"


def _field(name: str, type_name: str = "xs:string", extra: str = "") -> str:
    return f'<param name="{name}" style="plain" type="{type_name}" {extra}/>'


class TestCanonicalTypes:
    def test_identical_representations_merge(self):
        resolved = resolve(parse_file(FIXTURES / "widgets.wadl"))
        table = unify(resolved)
        reps = resolved.app.representations
        assert table.type_for(reps["A"]) is table.type_for(reps["B"])
        merged = table.type_for(reps["A"])
        assert merged.name == "AOrB"
        assert merged.declared is False
        assert merged.sites == ["WidgetsRenameWidgetRequest", "WidgetsRenameWidgetResponse"]

    def test_widget_names(self):
        table = unify(resolve(parse_file(FIXTURES / "widgets.wadl")))
        assert [t.name for t in table.types] == ["AOrB", "WidgetsGetWidgetResponse", "TicketsListTicketsResponse"]
        assert [(p.name, p.type) for p in table.types[1].fields] == [("name", "xs:string"), ("count", "xs:int")]

    def test_single_id_names_the_type(self):
        resolved = resolve(parse_file(FIXTURES / "main.wadl"), FileLoader())
        table = unify(resolved)
        (widget,) = table.types
        assert widget.name == "Widget"
        assert widget.declared is True
        assert len(widget.members) == 1

    def test_field_order_does_not_matter(self):
        _, table = _table(
            '<resources><resource path="x">'
            '<method name="GET" id="first"><response status="200">'
            + _json(_field("a", "xs:int"), _field("b"))
            + '</response></method><method name="POST" id="second"><request>'
            + _json(_field("b"), _field("a", "xs:int"))
            + "</request></method></resource></resources>"
        )
        (canonical,) = table.types
        assert canonical.name == "XFirstResponse"
        assert len(canonical.members) == 2
        assert [p.name for p in canonical.fields] == ["a", "b"]

    def test_required_flag_separates_types(self):
        _, table = _table(
            '<representation id="Loose" mediaType="application/json">' + _field("a") + "</representation>"
            '<representation id="Strict" mediaType="application/json">'
            + _field("a", extra='required="true"') + "</representation>"
        )
        assert [t.name for t in table.types] == ["Loose", "Strict"]

    def test_signature_ignores_docs(self):
        resolved, _ = _table(
            '<representation id="P" mediaType="application/json">'
            '<param name="a" style="plain"><doc>first</doc></param></representation>'
            '<representation id="Q" mediaType="application/json">'
            '<param name="a" style="plain"><doc>second</doc></param></representation>'
        )
        reps = resolved.app.representations
        assert field_signature(resolved, reps["P"].params) == field_signature(resolved, reps["Q"].params)

    def test_deterministic(self):
        resolved = resolve(parse_file(FIXTURES / "widgets.wadl"))
        first = unify(resolved)
        second = unify(resolved)
        assert [(t.name, t.signature) for t in first.types] == [(t.name, t.signature) for t in second.types]
        assert first.names == second.names

    def test_representation_without_fields_has_no_type(self):
        resolved, table = _table('<representation id="Text" mediaType="text/plain"/>')
        assert table.type_for(resolved.app.representations["Text"]) is None
        assert table.types == []

    def test_declared_name_collision(self):
        with pytest.raises(NamingCollision) as exc:
            _table(
                '<representation id="widget" mediaType="application/json">' + _field("a") + "</representation>"
                '<representation id="Widget" mediaType="application/json">' + _field("b") + "</representation>"
            )
        assert exc.value.name == "Widget"

    def test_declared_name_clashes_with_client_class(self):
        body = '<representation id="Client" mediaType="application/json">' + _field("a") + "</representation>"
        with pytest.raises(NamingCollision, match="client class"):
            _table(body)
        _, table = _table(body, GenerationConfig(client_name="Api"))
        assert table.types[0].name == "Client"

    def test_inline_anonymous_types(self):
        resolved = resolve(parse_file(FIXTURES / "widgets.wadl"))
        table = unify(resolved, GenerationConfig(inline_anonymous_types=True))
        assert [t.name for t in table.module_types()] == ["AOrB"]
        owners = {t.name: t.owner for t in table.types if t.owner}
        assert owners == {"WidgetsGetWidgetResponse": "Widgets", "TicketsListTicketsResponse": "Tickets"}

    def test_inline_types_of_one_method_get_distinct_names(self):
        xml = '<representation mediaType="application/xml">' + _field("b") + "</representation>"
        _, table = _table(
            '<resources base="http://x/"><resource path="w"><method name="GET">'
            f'<response status="200">{_json(_field("a"))}{xml}</response>'
            "</method></resource></resources>",
            GenerationConfig(inline_anonymous_types=True),
        )
        assert [(t.name, t.owner) for t in table.types] == [("WGetResponse", "W"), ("WGetResponse2", "W")]
        assert table.module_types() == []


class TestEnums:
    def test_options_become_one_enum(self):
        table = unify(resolve(parse_file(FIXTURES / "widgets.wadl")))
        (status,) = table.enums
        assert status.name == "Status"
        assert status.values == ["open", "closed", "archived"]
        assert status.members == [("OPEN", "open"), ("CLOSED", "closed"), ("ARCHIVED", "archived")]

    def test_same_param_name_with_other_values(self):
        def query(values):
            return '<param name="status" style="query">' + "".join(f'<option value="{v}"/>' for v in values) + "</param>"

        _, table = _table(
            '<resources><resource path="jobs">'
            f'<method name="GET" id="list"><request>{query("ab")}</request></method>'
            f'<method name="POST" id="create"><request>{query("xy")}</request></method>'
            "</resource></resources>"
        )
        assert [e.name for e in table.enums] == ["Status", "JobsCreateStatus"]

    def test_member_collision(self):
        with pytest.raises(NamingCollision, match="IN_PROGRESS"):
            _table(
                '<resources><resource path="jobs"><param name="state" style="query">'
                '<option value="in-progress"/><option value="in progress"/>'
                "</param></resource></resources>"
            )
