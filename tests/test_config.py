import pytest
from pydantic import ValidationError

from wadlgen.config import GenerationConfig, ParserOptions, load_config


class TestGenerationConfig:
    def test_defaults(self):
        config = GenerationConfig()
        assert config.naming_style == "snake"
        assert config.http_mode == "sync"
        assert config.media_type_preference == ["application/json"]
        assert config.include_doc_comments is True
        assert config.client_name == "Client"

    def test_unknown_option_rejected(self):
        with pytest.raises(ValidationError):
            GenerationConfig(naming="camel")

    def test_invalid_choice_rejected(self):
        with pytest.raises(ValidationError):
            GenerationConfig(http_mode="threads")

    def test_frozen(self):
        with pytest.raises(ValidationError):
            GenerationConfig().naming_style = "camel"

    def test_parser_options(self):
        assert ParserOptions().strict is False


class TestLoadConfig:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "wadlgen.yaml"
        path.write_text(
            "naming_style: camel\n"
            "media_type_preference:\n  - application/xml\n"
            "type_overrides:\n  tns:Money: str\n"
        )
        config = load_config(path)
        assert config.naming_style == "camel"
        assert config.media_type_preference == ["application/xml"]
        assert config.type_overrides == {"tns:Money": "str"}

    def test_overrides_win(self, tmp_path):
        path = tmp_path / "wadlgen.yaml"
        path.write_text("http_mode: async\nnaming_style: camel\n")
        config = load_config(path, naming_style="snake", http_mode=None)
        assert config.naming_style == "snake"
        assert config.http_mode == "async"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "wadlgen.yaml"
        path.write_text("")
        assert load_config(path) == GenerationConfig()

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "wadlgen.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)
