"""CLI output utilities."""

from collections.abc import Iterable
from typing import Any

from rich.box import ROUNDED
from rich.console import Console
from rich.table import Table

from recdao.core.introspection import RecordSchema


def print_success(console: Console, message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_warning(console: Console, message: str) -> None:
    console.print(f"[yellow]{message}[/yellow]")


def records_table(
    schema: RecordSchema,
    records: Iterable[Any],
    title: str | None = None,
    identifier: str | None = None,
) -> Table:
    """Table with one row per record and one column per field.

    Args:
        schema: Schema of the records.
        records: Records to show.
        title: Optional table title.
        identifier: Field to highlight as the identifier column.
    """
    table = Table(
        title=title,
        box=ROUNDED,
        show_header=True,
        header_style="bold cyan",
        title_style="bold",
        row_styles=["none", "dim"],
    )

    for name in schema.field_names:
        if name == identifier:
            table.add_column(name, style="cyan", no_wrap=True)
        else:
            table.add_column(name)

    for record in records:
        texts = schema.to_texts(record)
        table.add_row(*(texts[name] for name in schema.field_names))

    return table


def fields_table(schema: RecordSchema, identifier: str | None = None) -> Table:
    """Table describing the introspected fields of a record type."""
    table = Table(
        title=f"Fields of {schema.name}",
        box=ROUNDED,
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("#", style="dim", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    table.add_column("Nullable", justify="center")
    table.add_column("Identifier", justify="center")

    for position, field in enumerate(schema.fields, 1):
        table.add_row(
            str(position),
            field.name,
            field.kind.value,
            "yes" if field.nullable else "",
            "yes" if field.name == identifier else "",
        )

    return table


def values_table(schema: RecordSchema, name: str, values: Iterable[Any]) -> Table:
    """Single-column table of one field's values."""
    table = Table(box=ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column(name, style="cyan")
    for value in values:
        table.add_row(schema.to_text(name, value))
    return table
