"""Parser options and code generation configuration.

Generation settings can be kept in a YAML file::

    naming_style: camel
    http_mode: async
    media_type_preference:
      - application/json
      - application/xml
    type_overrides:
      tns:Money: decimal.Decimal
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field


class ParserOptions(BaseModel):
    """Options for the WADL parser."""

    model_config = ConfigDict(frozen=True)

    strict: bool = False  # reject unrecognized WADL elements and unusual param styles


class GenerationConfig(BaseModel):
    """Options recognized by the code generator."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    include_doc_comments: bool = True
    naming_style: Literal["snake", "camel"] = "snake"
    http_mode: Literal["sync", "async"] = "sync"
    media_type_preference: list[str] = Field(default_factory=lambda: ["application/json"])
    inline_anonymous_types: bool = False
    escape_reserved_words: bool = False
    strip_code_examples: bool = False
    type_overrides: dict[str, str] = Field(default_factory=dict)  # declared type -> Python annotation
    client_name: str = "Client"


def load_config(path: Path, **overrides) -> GenerationConfig:
    """Load a GenerationConfig from a YAML file, applying keyword overrides."""
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    data.update({k: v for k, v in overrides.items() if v is not None})
    return GenerationConfig(**data)
