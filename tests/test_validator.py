from unittest.mock import patch

import pytest

from conftest import FIXTURES
from wadlgen.errors import GenerationError
from wadlgen.generator.code import CodeGenerator
from wadlgen.generator.validator import validate_source
from wadlgen.parser.resolve import resolve
from wadlgen.parser.wadl import parse_file


class TestValidateSource:
    def test_valid_code(self):
        assert validate_source("import os\nx = 1\n") is None

    def test_syntax_error(self):
        error = validate_source("def foo(\n")
        assert error.startswith("SyntaxError")
        assert "(line 1)" in error

    def test_empty_module(self):
        assert validate_source("\n") == "empty module"


class TestGeneratedSourceIsChecked:
    @patch("wadlgen.generator.code.validate_source")
    def test_generation_fails_on_invalid_source(self, mock_validate):
        mock_validate.return_value = "SyntaxError: invalid syntax (line 3)"
        resolved = resolve(parse_file(FIXTURES / "widgets.wadl"))

        with pytest.raises(GenerationError, match="does not compile: SyntaxError"):
            CodeGenerator().generate(resolved)
        mock_validate.assert_called_once()
