"""Main CLI entry point and application setup."""

import importlib
import logging
import sqlite3
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click
from click.exceptions import Exit
from rich.console import Console

from recdao import __version__
from recdao.cli.config import load_config
from recdao.cli.output import (
    fields_table,
    print_success,
    print_warning,
    records_table,
    values_table,
)
from recdao.core.exceptions import DAOError
from recdao.core.sorting import Sense
from recdao.storage.backends.base import BaseDAO
from recdao.storage.backends.document import Layout
from recdao.storage.factory import csv_dao, sql_dao, xml_dao

logger = logging.getLogger(__name__)


@dataclass
class Context:
    """CLI context that holds the storage selection and shared resources."""

    console: Console
    config: dict[str, Any] = field(default_factory=dict)
    csv: Path | None = None
    xml: Path | None = None
    sqlite: Path | None = None
    debug: bool = False
    _dao: BaseDAO | None = None

    @property
    def identifier(self) -> str | None:
        return self.config.get("identifier")

    def dao(self) -> BaseDAO:
        """Open the DAO for the selected storage, once."""
        if self._dao is None:
            self._dao = self._open()
            logger.debug("Opened %s for %s", type(self._dao).__name__, self._dao.schema)
        return self._dao

    def _open(self) -> BaseDAO:
        selected = [p for p in (self.csv, self.xml, self.sqlite) if p is not None]
        if len(selected) != 1:
            raise click.UsageError("Select exactly one of --csv, --xml or --sqlite")

        record = self.config.get("record")
        if not record:
            raise click.UsageError("No record type given (use --record module:Class)")
        factory = load_record_factory(record)

        if self.csv is not None:
            return csv_dao(
                factory,
                self.csv,
                identifier=self.identifier,
                separator=str(self.config.get("separator", ",")),
            )
        if self.xml is not None:
            return xml_dao(
                factory,
                self.xml,
                layout=Layout(self.config.get("layout", "tag")),
                identifier=self.identifier,
            )

        connection = sqlite3.connect(str(self.sqlite))
        click.get_current_context().call_on_close(connection.close)
        return sql_dao(factory, connection, identifier=self.identifier, create=True)


def setup_logging(
    verbose: bool = False, quiet: bool = False, debug: bool = False
) -> None:
    """Configure logging based on CLI flags."""
    if quiet:
        level = logging.WARNING
    elif verbose or debug:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s"
        if not debug
        else "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_console(no_color: bool = False, width: int | None = None) -> Console:
    """Create Rich console with appropriate settings."""
    return Console(
        no_color=no_color,
        width=width or 120,
        highlight=not no_color,
        color_system=None if no_color else "auto",
    )


def load_record_factory(reference: str) -> Callable[[], Any]:
    """Resolve a ``module:Class`` reference to a record factory."""
    module_name, _, attribute = reference.partition(":")
    if not module_name or not attribute:
        raise click.BadParameter(
            f"expected module:Class, got {reference!r}", param_hint="--record"
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(
            f"cannot import {module_name!r}: {e}", param_hint="--record"
        ) from e

    factory = getattr(module, attribute, None)
    if not callable(factory):
        raise click.BadParameter(
            f"{module_name!r} has no record type {attribute!r}", param_hint="--record"
        )
    return factory


def parse_assignment(text: str) -> tuple[str, str]:
    """Split ``NAME=VALUE``."""
    name, sep, value = text.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"expected NAME=VALUE, got {text!r}")
    return name.strip(), value


class RecDAOGroup(click.Group):
    """Custom group that reports DAO errors and handles KeyboardInterrupt."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except KeyboardInterrupt:
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            if console:
                console.print("[yellow]Interrupted[/yellow]")
            ctx.exit(130)
        except (click.ClickException, click.Abort, Exit, SystemExit):
            raise
        except Exception as e:
            debug = getattr(ctx.obj, "debug", False) if ctx.obj else False
            if debug:
                raise
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            prefix = "Storage error" if isinstance(e, DAOError) else "Error"
            if console:
                console.print(f"[red]{prefix}:[/red] {e}", highlight=False)
            else:
                click.echo(f"{prefix}: {e}", err=True)
            ctx.exit(1)


@click.group(cls=RecDAOGroup)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-error output")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--debug", is_flag=True, help="Enable debug mode with full tracebacks")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--csv",
    "csv_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Delimited text file to work on",
)
@click.option(
    "--xml",
    "xml_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="XML document to work on",
)
@click.option(
    "--sqlite",
    "sqlite_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="SQLite database to work on",
)
@click.option("--record", "-r", help="Record type as module:Class")
@click.option("--id", "identifier", help="Name of the identifier field")
@click.option("--separator", help="Cell separator of the delimited file")
@click.option(
    "--layout",
    type=click.Choice([layout.value for layout in Layout], case_sensitive=False),
    help="Field placement in the XML document",
)
@click.version_option(
    version=__version__, prog_name="recdao", message="recdao version %(version)s"
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    no_color: bool,
    debug: bool,
    config: Path | None,
    csv_path: Path | None,
    xml_path: Path | None,
    sqlite_path: Path | None,
    record: str | None,
    identifier: str | None,
    separator: str | None,
    layout: str | None,
) -> None:
    """Uniform record access over SQLite, delimited text and XML files."""
    setup_logging(verbose=verbose, quiet=quiet, debug=debug)

    try:
        settings = load_config(config)
    except ValueError as e:
        if debug:
            raise
        click.echo(f"Error loading config file: {e}", err=True)
        ctx.exit(1)

    overrides = {
        "record": record,
        "identifier": identifier,
        "separator": separator,
        "layout": layout,
    }
    settings.update({key: value for key, value in overrides.items() if value})

    ctx.obj = Context(
        console=create_console(no_color=no_color),
        config=settings,
        csv=csv_path,
        xml=xml_path,
        sqlite=sqlite_path,
        debug=debug,
    )


def _order_options(command):
    command = click.option(
        "--desc", is_flag=True, help="Sort in descending order"
    )(command)
    return click.option("--order-by", help="Field to sort on")(command)


@cli.command()
@click.pass_obj
def fields(obj: Context) -> None:
    """Show the fields of the record type."""
    dao = obj.dao()
    obj.console.print(fields_table(dao.schema, identifier=dao.identifier))


@cli.command(name="list")
@_order_options
@click.pass_obj
def list_cmd(obj: Context, order_by: str | None, desc: bool) -> None:
    """List all records."""
    dao = obj.dao()
    sense = Sense.DESC if desc else Sense.ASC
    records = dao.get_all_order_by(order_by, sense) if order_by else dao.get_all()
    _show(obj, dao, records)


@cli.command()
@click.option("--where", "where", metavar="NAME=VALUE", help="Field equals value")
@click.option("--match", "match", metavar="NAME=REGEX", help="Field matches regex")
@_order_options
@click.pass_obj
def get(
    obj: Context,
    where: str | None,
    match: str | None,
    order_by: str | None,
    desc: bool,
) -> None:
    """Show the records satisfying one condition."""
    if (where is None) == (match is None):
        raise click.UsageError("Give exactly one of --where or --match")

    dao = obj.dao()
    sense = Sense.DESC if desc else Sense.ASC
    if where is not None:
        name, value = parse_assignment(where)
        if order_by:
            records = dao.get_by_property_order_by(name, value, order_by, sense)
        else:
            records = dao.get_by_property(name, value)
    else:
        name, regex = parse_assignment(match)
        if order_by:
            records = dao.get_by_pattern_order_by(name, regex, order_by, sense)
        else:
            records = dao.get_by_pattern(name, regex)
    _show(obj, dao, records)


@cli.command()
@click.pass_obj
def ids(obj: Context) -> None:
    """List the identifiers of all records."""
    dao = obj.dao()
    obj.console.print(values_table(dao.schema, dao.identifier, dao.get_ids()))


@cli.command()
@click.argument("assignments", nargs=-1, required=True, metavar="NAME=VALUE...")
@click.pass_obj
def add(obj: Context, assignments: tuple[str, ...]) -> None:
    """Add one record; fields not given keep their blank value."""
    dao = obj.dao()
    texts = dict(parse_assignment(text) for text in assignments)
    dao.validator.validate(*texts)

    record = dao.schema.blank()
    for name, text in texts.items():
        dao.schema.write(record, name, dao.schema.from_text(name, text))

    if dao.add(record):
        print_success(obj.console, "Added 1 record")
    else:
        print_warning(obj.console, "Nothing added")


@cli.command()
@click.option("--id", "identifier", required=True, help="Identifier of the record")
@click.argument("assignment", metavar="NAME=VALUE")
@click.pass_obj
def update(obj: Context, identifier: str, assignment: str) -> None:
    """Change one field of the record holding an identifier."""
    dao = obj.dao()
    name, value = parse_assignment(assignment)
    if dao.update_property_by_id(identifier, name, dao.schema.from_text(name, value)):
        print_success(obj.console, f"Updated record {identifier}")
    else:
        print_warning(obj.console, f"No record with identifier {identifier}")


@cli.command()
@click.option("--where", "where", metavar="NAME=VALUE", help="Field equals value")
@click.option("--match", "match", metavar="NAME=REGEX", help="Field matches regex")
@click.option("--id", "identifier", help="Identifier of the record")
@click.pass_obj
def delete(
    obj: Context, where: str | None, match: str | None, identifier: str | None
) -> None:
    """Delete the records satisfying one condition."""
    given = [option for option in (where, match, identifier) if option is not None]
    if len(given) != 1:
        raise click.UsageError("Give exactly one of --where, --match or --id")

    dao = obj.dao()
    if where is not None:
        count = dao.delete_by_property(*parse_assignment(where))
    elif match is not None:
        count = dao.delete_by_pattern(*parse_assignment(match))
    else:
        count = 1 if dao.delete_by_id(identifier) else 0

    if count:
        print_success(obj.console, f"Deleted {count} record(s)")
    else:
        print_warning(obj.console, "No record deleted")


def _show(obj: Context, dao: BaseDAO, records) -> None:
    if not records:
        print_warning(obj.console, "No records")
        return
    obj.console.print(
        records_table(
            dao.schema,
            records,
            title=f"{dao.schema.name} ({len(records)})",
            identifier=dao.identifier,
        )
    )


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        sys.exit(130)
