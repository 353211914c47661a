import pytest

from wadlgen.errors import NamingCollision
from wadlgen.generator.naming import NamingScope, camel, constant, identifier, pascal, snake, split_words


class TestCaseConversion:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("getWidget", "get_widget"),
            ("X-Trace", "x_trace"),
            ("HTTPStatus", "http_status"),
            ("already_snake", "already_snake"),
            ("2fa", "n2fa"),
        ],
    )
    def test_snake(self, text, expected):
        assert snake(text) == expected

    def test_camel(self):
        assert camel("get_widget") == "getWidget"
        assert camel("X-Trace") == "xTrace"
        assert camel("") == ""

    def test_pascal(self):
        assert pascal("get-widget") == "GetWidget"
        assert pascal("widgets/{id}") == "WidgetsId"
        assert pascal("3d") == "N3d"

    def test_constant(self):
        assert constant("in-progress") == "IN_PROGRESS"
        assert constant("open") == "OPEN"
        assert constant("1st") == "_1ST"
        assert constant("--") == "EMPTY"

    def test_split_words(self):
        assert split_words("parseHTTPResponse") == ["parse", "HTTP", "Response"]

    def test_identifier_style(self):
        assert identifier("node_id", "camel") == "nodeId"
        assert identifier("nodeId", "snake") == "node_id"


class TestNamingScope:
    def test_claim_and_collision(self):
        scope = NamingScope("module")
        assert scope.claim("Widget", "representation A") == "Widget"
        with pytest.raises(NamingCollision) as exc:
            scope.claim("Widget", "representation B")
        assert exc.value.first == "representation A"
        assert exc.value.second == "representation B"

    def test_reserved_word_rejected(self):
        with pytest.raises(NamingCollision, match="reserved word"):
            NamingScope("params").claim("class", "param class")

    def test_reserved_word_escaped(self):
        scope = NamingScope("params", escape_reserved=True)
        assert scope.claim("class", "param class") == "class_"
        assert "class_" in scope

    def test_empty_identifier(self):
        with pytest.raises(NamingCollision, match="empty identifier"):
            NamingScope("params").claim("", "param ---")

    def test_claim_unique_appends_suffix(self):
        scope = NamingScope("module")
        scope.reserve("Client", "client class")
        assert scope.claim_unique("Client", "resource client") == "Client2"
        assert scope.claim_unique("Client", "resource client again") == "Client3"

    def test_copy_is_independent(self):
        scope = NamingScope("module")
        scope.claim("A", "a")
        other = scope.copy()
        other.claim("B", "b")
        assert "B" not in scope
        assert "A" in other
