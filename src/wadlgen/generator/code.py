"""Code generator: resolved WADL model -> Python client module source."""

import logging
from pathlib import Path

import jinja2

from wadlgen.config import GenerationConfig
from wadlgen.errors import GenerationError
from wadlgen.generator.context import build_context, py_str
from wadlgen.generator.unify import TypeTable, unify
from wadlgen.generator.validator import validate_source
from wadlgen.parser.resolve import ResolvedApplication

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


class CodeGenerator:
    """Generates a typed client module from a resolved application.

    The model is only read, so one application can be generated again
    with a different configuration.
    """

    def __init__(self, config: GenerationConfig | None = None):
        self.config = config or GenerationConfig()
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["py_str"] = py_str

    def generate(self, resolved: ResolvedApplication, type_table: TypeTable | None = None) -> str:
        if type_table is None:
            type_table = unify(resolved, self.config)
        context = build_context(resolved, type_table, self.config)
        source = self.env.get_template("client.py.j2").render(**context)
        error = validate_source(source)
        if error:
            raise GenerationError(f"generated code does not compile: {error}")
        logger.debug(
            "Generated %d types, %d enums, %d resource classes",
            len(context["models"]),
            len(context["enums"]),
            len(context["classes"]),
        )
        return source


def generate(
    resolved: ResolvedApplication,
    config: GenerationConfig | None = None,
    type_table: TypeTable | None = None,
) -> str:
    """Render the client module for ``resolved``."""
    return CodeGenerator(config).generate(resolved, type_table)
