import pytest

from wadlgen.errors import UnsupportedTypeMapping
from wadlgen.generator.types import literal, local_type_name, map_type


class TestMapType:
    @pytest.mark.parametrize(
        "type_name,expected",
        [
            ("xs:string", "str"),
            ("xsd:long", "int"),
            ("xs:double", "float"),
            ("xs:boolean", "bool"),
            ("xs:dateTime", "datetime.datetime"),
            ("xs:base64Binary", "bytes"),
            ("anyType", "Any"),
        ],
    )
    def test_builtin_types(self, type_name, expected):
        assert map_type(type_name, "param x") == expected

    def test_unknown_type(self):
        with pytest.raises(UnsupportedTypeMapping) as exc:
            map_type("tns:Widget", "param w")
        assert exc.value.type_name == "tns:Widget"
        assert exc.value.source == "param w"

    def test_overrides_by_qualified_and_local_name(self):
        assert map_type("tns:Widget", "param w", {"tns:Widget": "dict"}) == "dict"
        assert map_type("tns:Widget", "param w", {"Widget": "str"}) == "str"
        assert map_type("xs:int", "param n", {"int": "str"}) == "str"

    def test_local_type_name(self):
        assert local_type_name("xs:int") == "int"
        assert local_type_name("int") == "int"


class TestLiteral:
    def test_numbers_and_booleans(self):
        assert literal("10", "int", "xs:int", "limit") == "10"
        assert literal("1.5", "float", "xs:double", "ratio") == "1.5"
        assert literal("true", "bool", "xs:boolean", "flag") == "True"
        assert literal("0", "bool", "xs:boolean", "flag") == "False"

    def test_strings_are_quoted(self):
        assert literal("it's", "str", "xs:string", "name") == repr("it's")

    def test_dates(self):
        assert literal("2024-01-02", "datetime.date", "xs:date", "d") == "datetime.date.fromisoformat('2024-01-02')"

    def test_bytes(self):
        assert literal("aGk=", "bytes", "xs:base64Binary", "b") == "b'hi'"
        assert literal("ff", "bytes", "xs:hexBinary", "h") == "b'ff'"

    @pytest.mark.parametrize(
        "value,annotation,type_name",
        [
            ("ten", "int", "xs:int"),
            ("yes", "bool", "xs:boolean"),
            ("02/01/2024", "datetime.date", "xs:date"),
            ("!!", "bytes", "xs:base64Binary"),
        ],
    )
    def test_invalid_values(self, value, annotation, type_name):
        with pytest.raises(UnsupportedTypeMapping, match="invalid value"):
            literal(value, annotation, type_name, "param p")
