"""Command line interface: evaluate blueprints and run their declared fixtures."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from .composer import compose
from .errors import BlueprintError
from .fixtures import run_fixtures
from .hcl import load_document
from .manifest import render
from .modules import resolve
from .registry import Registry

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
    )


def error_exit(message: str, code: int = 1) -> None:
    """Print an error message and exit with the given code."""
    err_console.print(f"[red]Error:[/red] {message}", highlight=False)
    sys.exit(code)


def _parse_pairs(pairs: tuple[str, ...], option: str) -> dict[str, str]:
    """Split repeated NAME=VALUE options into a dict, keeping the last value."""
    parsed: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=VALUE, got '{pair}'", param_hint=option)
        parsed[name] = value
    return parsed


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--schema-dir",
    "-s",
    "schema_dirs",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory of .hcl schemas and blueprints to register (repeatable)",
)
@click.option("--var", "variables", multiple=True, metavar="NAME=VALUE", help="Template variable")
@click.version_option(package_name="kuken-blueprints", prog_name="kukenbp")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    schema_dirs: tuple[Path, ...],
    variables: tuple[str, ...],
) -> None:
    """Evaluate and test Kuken blueprints."""
    setup_logging(verbose)
    registry = Registry(context=_parse_pairs(variables, "--var"))
    try:
        for schema_dir in schema_dirs:
            registry.scan(schema_dir)
    except BlueprintError as exc:
        error_exit(str(exc))
    ctx.obj = registry.freeze()
    logger.debug("CLI initialized with %r", ctx.obj)


@cli.command("eval")
@click.argument("blueprint", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--input", "-i", "inputs", multiple=True, metavar="NAME=VALUE", help="Input value")
@click.option("--ref", "-r", "refs", multiple=True, metavar="PATH=VALUE", help="Runtime reference")
@click.option("--reveal", is_flag=True, help="Print secret values instead of redacting them")
@click.pass_obj
def eval_command(
    registry: Registry,
    blueprint: Path,
    inputs: tuple[str, ...],
    refs: tuple[str, ...],
    reveal: bool,
) -> None:
    """Resolve, compose and render BLUEPRINT, printing the manifest as JSON."""
    values = _parse_pairs(inputs, "--input")
    context = _parse_pairs(refs, "--ref")
    try:
        resolved = resolve(blueprint, registry)
        manifest = render(compose(resolved, values, context))
    except BlueprintError as exc:
        error_exit(f"{type(exc).__name__}: {exc}")
    click.echo(manifest.to_json(reveal=reveal, indent=2))


@cli.command("test")
@click.argument("blueprint", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def test_command(registry: Registry, blueprint: Path) -> None:
    """Run the test fixtures declared in BLUEPRINT."""
    try:
        document = load_document(blueprint, context=registry.context)
        resolved = resolve(document, registry)
    except BlueprintError as exc:
        error_exit(f"{type(exc).__name__}: {exc}")

    if not document.fixtures:
        console.print(f"[yellow]No tests declared in {blueprint}[/yellow]")
        return

    results = run_fixtures(resolved, document.fixtures)
    for result in results:
        if result.passed:
            console.print(f"[green]PASS[/green] {result.fixture.name}", highlight=False)
        else:
            console.print(f"[red]FAIL[/red] {result.fixture.name}", highlight=False)
            for failure in result.failures:
                console.print(f"  • {failure}", highlight=False)

    failed = sum(1 for r in results if not r.passed)
    console.print(f"\n{len(results) - failed} passed, {failed} failed")
    if failed:
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
