"""Command-line interface for palletgen code generation."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from palletgen.generator import python
from palletgen.generator.decoder import decode_literal
from palletgen.generator.errors import GenerationError
from palletgen.generator.pallet import assemble
from palletgen.generator.parser import load, parse_type_expression
from palletgen.generator.registry import TypeRegistry
from palletgen.generator.types import hex_bytes

if TYPE_CHECKING:
    from palletgen.generator.pallet import Pallet

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)


def _fail(message: str) -> NoReturn:
    err_console.print(
        f"[bold red]error:[/bold red] {escape(message)}", highlight=False, soft_wrap=True
    )
    sys.exit(1)


def _load_metadata(input_file: str):
    with open(input_file, encoding="utf-8") as f:
        return load(f.read())


@click.group(context_settings={"auto_envvar_prefix": "PALLETGEN"})
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log generation progress")
def cli(verbose: bool) -> None:
    """Palletgen storage and constant binding generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input metadata JSON file")
@click.option("--output", "-o", "output_file", required=True, help="Output Python file")
@click.option(
    "--runtime-import",
    "runtime_import",
    is_flag=False,
    flag_value="palletgen.proto",
    default=None,
    help="Import path for runtime. No value=palletgen.proto, omit=palletgen_runtime",
)
@click.option("--pallet", "-p", "pallets", multiple=True, help="Only generate these pallets")
def gen(input_file: str, output_file: str, runtime_import: str | None, pallets: tuple) -> None:
    """Generate bindings from a metadata document."""
    try:
        metadata = _load_metadata(input_file)
        selected, registry = assemble(metadata, pallets or None)
        # Default to "palletgen_runtime" (relative import) if not specified
        import_path = runtime_import if runtime_import is not None else "palletgen_runtime"
        generated_file = python.render(selected, registry, runtime_import=import_path)
    except GenerationError as exc:
        _fail(str(exc))

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(generated_file)
    logger.debug("Wrote %s", output_file)


@cli.command()
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option("--name", default="palletgen_runtime", help="Runtime folder name")
def runtime(output_path: str, name: str) -> None:
    """Generate runtime support code."""
    runtime_dir = Path(output_path) / name
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in python.runtime().items():
        (runtime_dir / filename).write_text(content)
    print(f"Generated Python runtime in {runtime_dir}")


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input metadata JSON file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display pallets, storage entries and constants."""
    try:
        pallets, registry = assemble(_load_metadata(input_file))
    except GenerationError as exc:
        _fail(str(exc))

    if output_json:
        _output_json(pallets, registry)
    else:
        _output_plain(pallets, registry)


@cli.command()
@click.option("--input", "-i", "input_file", default=None, help="Metadata JSON for named types")
@click.option("--type", "-t", "type_expr", required=True, help='Type expression, e.g. "Vec<u32>"')
@click.argument("value")
def decode(input_file: str | None, type_expr: str, value: str) -> None:
    """Decode a hex VALUE and print it as a Python literal."""
    try:
        table = _load_metadata(input_file).type_table if input_file else {}
        type_id, table = parse_type_expression(type_expr, table)
        registry = TypeRegistry.build(table, [type_id])
        literal = decode_literal(registry, type_id, hex_bytes(value))
    except GenerationError as exc:
        _fail(str(exc))
    except ValueError as exc:
        _fail(f"Invalid hex value: {exc}")

    print(literal)


def _storage_rows(pallet: Pallet, registry: TypeRegistry) -> list[dict]:
    rows = []
    for query in pallet.queries:
        storage = query.storage
        rows.append(
            {
                "name": storage.name,
                "container": storage.container,
                "hashers": [h.hasher.value for h in storage.hashers],
                "keys": [registry.annotation(h.key.id) for h in storage.hashers],
                "value": query.return_annotation(registry),
                "default": query.default,
            }
        )
    return rows


def _output_json(pallets: list[Pallet], registry: TypeRegistry) -> None:
    """Output pallet info as JSON."""
    data: dict = {"types": len(registry.descriptors), "pallets": {}}

    for pallet in pallets:
        data["pallets"][pallet.name] = {
            "index": pallet.index,
            "storage": _storage_rows(pallet, registry),
            "constants": {c.name: c.literal for c in pallet.constants},
        }

    print(json.dumps(data, indent=2))


def _output_plain(pallets: list[Pallet], registry: TypeRegistry) -> None:
    """Output pallet info using rich text formatting."""
    console = Console()

    for pallet in pallets:
        console.print(f"[bold cyan]{pallet.name}[/bold cyan] [dim]#{pallet.index}[/dim]")

        if pallet.queries:
            storage_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
            storage_table.add_column("Storage", style="white")
            storage_table.add_column("Keys", style="yellow")
            storage_table.add_column("Hashers", style="dim")
            storage_table.add_column("Value", style="green")

            for row in _storage_rows(pallet, registry):
                storage_table.add_row(
                    row["name"],
                    escape(", ".join(row["keys"])),
                    ", ".join(row["hashers"]),
                    escape(row["value"]),
                )
            console.print(storage_table)

        if pallet.constants:
            const_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
            const_table.add_column("Constant", style="white")
            const_table.add_column("Type", style="green")
            const_table.add_column("Value", style="yellow")

            for constant in pallet.constants:
                const_table.add_row(
                    constant.name,
                    escape(registry.annotation(constant.type.id)),
                    escape(constant.literal),
                )
            console.print(const_table)

        console.print()

    console.print(f"[dim]{len(registry.descriptors)} types resolved[/dim]")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
