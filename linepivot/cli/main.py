#!/usr/bin/env python3
"""LinePivot CLI - inspect table regions and apply line formats to documents."""

import json
import sys
from pathlib import Path
from typing import Any, NoReturn, Optional

import click

from linepivot import __version__
from linepivot.core.config import EditorConfig, load_config
from linepivot.core.exceptions import LinePivotError
from linepivot.core.formats import FormatKind
from linepivot.core.ranges import Range
from linepivot.core.regions import TableRegionDetector
from linepivot.core.splitter import RangeSplitter
from linepivot.document import load_document
from linepivot.editor import Editor
from linepivot.formatting import FormatCommand
from linepivot.observability import configure_logging

range_options = [
    click.option("--index", "-i", type=int, default=0, show_default=True, help="Selection start offset"),
    click.option(
        "--length",
        "-l",
        type=int,
        default=None,
        help="Selection length (default: to the end of the document)",
    ),
]


def with_range(func: Any) -> Any:
    for option in reversed(range_options):
        func = option(func)
    return func


def _selection(tree_length: int, index: int, length: Optional[int]) -> Range:
    if length is None:
        length = max(0, tree_length - index)
    return Range(index, length)


def _fail(error: LinePivotError) -> NoReturn:
    click.echo(f"Error: {error.message}", err=True)
    click.echo(json.dumps(error.to_dict(), default=str), err=True)
    sys.exit(1)


def _parse_value(kind: FormatKind, raw: Optional[str]) -> Any:
    if raw is None or raw.lower() in {"none", "off", ""}:
        return 0 if kind is FormatKind.HEADER else None
    if kind in (FormatKind.HEADER, FormatKind.INDENT):
        try:
            return int(raw)
        except ValueError:
            raise click.BadParameter(f"{kind.value} needs an integer, got {raw!r}")
    return raw


def _render_lines(editor: Editor) -> str:
    rows = []
    for line in editor.lines_summary():
        attributes = " ".join(
            f"{name}={value}" for name, value in sorted(line["attributes"].items())
        )
        marker = "T" if line["in_table"] else " "
        rows.append(f"{line['start']:>6} {marker} [{attributes}] {line['text']}")
    return "\n".join(rows)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True),
    help="Path to a LinePivot YAML configuration file",
)
@click.option("--log-level", type=str, default=None, help="Override the configured log level")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]) -> None:
    """LinePivot - table-aware line formatting for rich-text documents."""
    ctx.ensure_object(dict)
    try:
        config = load_config(config_path)
    except LinePivotError as e:
        _fail(e)
    if log_level:
        config.logging.level = log_level
    configure_logging(config.logging)
    ctx.obj["config"] = config


@cli.command()
@click.argument("input_file", type=click.Path(exists=True))
@with_range
@click.pass_context
def regions(ctx: click.Context, input_file: str, index: int, length: Optional[int]) -> None:
    """List the table regions a selection crosses."""
    try:
        tree = load_document(Path(input_file))
        selection = _selection(tree.length, index, length)
        found = TableRegionDetector(tree).find_regions(selection)
    except LinePivotError as e:
        _fail(e)
    click.echo(json.dumps([region.to_dict() for region in found], indent=2))


@cli.command()
@click.argument("input_file", type=click.Path(exists=True))
@with_range
@click.pass_context
def split(ctx: click.Context, input_file: str, index: int, length: Optional[int]) -> None:
    """Split a selection into the sub-ranges that lie outside tables."""
    try:
        tree = load_document(Path(input_file))
        selection = _selection(tree.length, index, length)
        sub_ranges = RangeSplitter(tree).split(selection)
    except LinePivotError as e:
        _fail(e)
    click.echo(json.dumps([sub.as_range().to_dict() for sub in sub_ranges], indent=2))


@cli.command(name="format")
@click.argument("input_file", type=click.Path(exists=True))
@with_range
@click.option(
    "--kind",
    "-k",
    type=click.Choice([kind.value for kind in FormatKind]),
    required=True,
    help="Line format to apply",
)
@click.option(
    "--value",
    "-v",
    type=str,
    default=None,
    help="Format value: list kind, header level, indent delta or line-height token",
)
@click.option(
    "--output-format",
    "-f",
    type=click.Choice(["text", "json"]),
    default="text",
    help="How to print the formatted document",
)
@click.pass_context
def format_command(
    ctx: click.Context,
    input_file: str,
    index: int,
    length: Optional[int],
    kind: str,
    value: Optional[str],
    output_format: str,
) -> None:
    """Apply a line format to a selection of a Docling JSON document."""
    config: EditorConfig = ctx.obj["config"]
    format_kind = FormatKind(kind)
    try:
        editor = Editor(load_document(Path(input_file)), config)
        selection = _selection(editor.tree.length, index, length)
        result = FormatCommand(editor).execute(
            format_kind, _parse_value(format_kind, value), selection
        )
    except LinePivotError as e:
        _fail(e)

    if output_format == "json":
        click.echo(
            json.dumps(
                {"result": result.to_dict(), "lines": editor.lines_summary()},
                indent=2,
                default=str,
            )
        )
    else:
        click.echo(
            f"Applied {format_kind.value} to {len(result.events)} of "
            f"{len(result.sub_ranges)} sub-range(s)"
        )
        click.echo(_render_lines(editor))


@cli.command()
def version() -> None:
    """Show LinePivot version."""
    click.echo(f"LinePivot v{__version__}")


def main() -> int:
    """Main entry point."""
    try:
        cli()
        return 0
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
