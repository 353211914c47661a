"""CLI entry point for wadlgen."""

import json
import logging
from pathlib import Path

import click
import yaml

from wadlgen.config import GenerationConfig, ParserOptions, load_config
from wadlgen.errors import WadlError
from wadlgen.generator.code import CodeGenerator
from wadlgen.parser.loader import DefaultLoader
from wadlgen.parser.model import Application
from wadlgen.parser.render import render
from wadlgen.parser.resolve import ResolvedApplication, resolve
from wadlgen.parser.wadl import parse_file


def _load(doc_path: Path, strict: bool) -> ResolvedApplication:
    """Parse a WADL file and resolve its references."""
    options = ParserOptions(strict=strict)
    app = parse_file(doc_path, options)
    with DefaultLoader() as loader:
        return resolve(app, loader, options)


def _summary(app: Application) -> str:
    resources = sum(1 for _ in app.iter_resources())
    return f"{resources} resources, {len(app.resource_types)} resource types, {len(app.representations)} representations"


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """wadlgen: parse WADL documents and generate typed Python clients."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--strict", is_flag=True, help="Reject unrecognized elements and unusual param styles.")
@click.option("--resolve/--no-resolve", "do_resolve", default=False, help="Also resolve cross references.")
@click.option("--format", "fmt", default="xml", type=click.Choice(["xml", "json"]), help="Output format.")
def parse(doc_path: Path, strict: bool, do_resolve: bool, fmt: str):
    """Parse a WADL document and print it normalized."""
    try:
        if do_resolve:
            app = _load(doc_path, strict).app
        else:
            app = parse_file(doc_path, ParserOptions(strict=strict))
    except WadlError as e:
        raise click.ClickException(str(e)) from e
    if fmt == "json":
        click.echo(json.dumps(app.model_dump(mode="json"), indent=2))
    else:
        click.echo(render(app), nl=False)


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output path for the client module.")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, path_type=Path), help="YAML generation config.")
@click.option("--naming-style", default=None, type=click.Choice(["snake", "camel"]), help="Identifier style.")
@click.option("--http-mode", default=None, type=click.Choice(["sync", "async"]), help="Blocking or async methods.")
@click.option("--media-type", "media_types", multiple=True, help="Preferred media type (repeatable, in order).")
@click.option("--no-docs", is_flag=True, help="Leave documentation out of the generated code.")
@click.option("--strict", is_flag=True, help="Reject unrecognized elements and unusual param styles.")
def generate(
    doc_path: Path,
    output: Path,
    config_path: Path | None,
    naming_style: str | None,
    http_mode: str | None,
    media_types: tuple[str, ...],
    no_docs: bool,
    strict: bool,
):
    """Generate a typed Python client from a WADL document."""
    overrides = {
        "naming_style": naming_style,
        "http_mode": http_mode,
        "media_type_preference": list(media_types) or None,
        "include_doc_comments": False if no_docs else None,
    }
    try:
        if config_path is not None:
            config = load_config(config_path, **overrides)
        else:
            config = GenerationConfig(**{k: v for k, v in overrides.items() if v is not None})
    except (ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"invalid configuration: {e}") from e

    click.echo(f"Parsing {doc_path}...")
    try:
        resolved = _load(doc_path, strict)
        click.echo(f"Found {_summary(resolved.app)}.")
        source = CodeGenerator(config).generate(resolved)
    except WadlError as e:
        raise click.ClickException(str(e)) from e

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(source, encoding="utf-8")
    click.echo(f"Client saved to {output}")
