"""Command-line interface for Starlark binding generation."""

from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from starlark_codegen.generator.codegen import GeneratedBindings, generate_bindings
from starlark_codegen.generator.config import GeneratorConfig
from starlark_codegen.generator.formatting import FormatError, format_source
from starlark_codegen.generator.naming import registered_name
from starlark_codegen.generator.types import GenerationError

err_console = Console(stderr=True)


def _parse_acronyms(values: tuple[str, ...]) -> dict[str, str]:
    acronyms = {}
    for item in values:
        name, sep, camel = item.partition("=")
        if not sep or not name or not camel:
            raise click.BadParameter(
                f"expected NAME=camelName, got {item!r}", param_hint="--acronym"
            )
        acronyms[name] = camel
    return acronyms


def _output_types(bindings: GeneratedBindings) -> None:
    """Print the types bindings were generated for."""
    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("Type", style="white")
    table.add_column("Kind", style="dim")
    table.add_column("Builtin", style="green")

    for kind, types in (("root", bindings.root_types), ("member", bindings.member_types)):
        for t in types:
            table.add_row(t.name, kind, registered_name(bindings.package.name, t.name))

    err_console.print(f"[bold cyan]Package {escape(bindings.package.path)}[/bold cyan]")
    err_console.print(table)


@click.command()
@click.argument("input_path", type=click.Path(exists=True))
@click.argument("output_path")
@click.option("--package", default=None, help="Import path of the input package")
@click.option(
    "--runtime-import",
    default=GeneratorConfig.runtime_import,
    show_default=True,
    help="Import path of the runtime used by the generated module",
)
@click.option(
    "--acronym",
    "acronyms",
    multiple=True,
    help="Lower camel case override for a type name, as NAME=camelName",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="List the generated types")
def cli(
    input_path: str,
    output_path: str,
    package: str | None,
    runtime_import: str,
    acronyms: tuple[str, ...],
    verbose: bool,
) -> None:
    """Generate Starlark bindings for the API types in INPUT_PATH.

    INPUT_PATH is a package directory or a JSON package document. OUTPUT_PATH
    is a directory to write bindings.py into, or - for stdout.
    """
    config = GeneratorConfig(runtime_import=runtime_import)
    if acronyms:
        config = replace(config, naming=config.naming.with_acronyms(**_parse_acronyms(acronyms)))

    try:
        bindings = generate_bindings(input_path, config, package=package)
    except GenerationError as err:
        err_console.print(f"[red]Error:[/red] {escape(str(err))}")
        sys.exit(1)

    if verbose:
        _output_types(bindings)

    try:
        output = format_source(bindings.source, config.output_filename)
    except FormatError as err:
        err_console.print(f"[yellow]Problem formatting output:[/yellow] {escape(str(err))}")
        output = bindings.source

    if output_path == "-":
        click.echo(output, nl=False)
        err_console.print("Wrote output to stdout")
        return

    out_dir = Path(output_path)
    if not out_dir.is_dir():
        err_console.print(f"[red]Error:[/red] not a directory: {escape(output_path)}")
        sys.exit(1)

    out_file = out_dir / config.output_filename
    try:
        out_file.write_text(output, encoding="utf-8")
    except OSError as err:
        err_console.print(f"[red]Error:[/red] writing {escape(str(out_file))}: {escape(str(err))}")
        sys.exit(1)
    err_console.print(f"Wrote output to {escape(str(out_file))}")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
