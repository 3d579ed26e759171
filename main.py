#!/usr/bin/env python3
"""Dataflow Column Mapper - Entry point."""
import sys
import os
import json
import logging
from pathlib import Path
from typing import Optional

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import click
from colorama import Fore, Style, init

from config import app_config
from mapping_engine import __version__
from mapping_engine.cli.display import (
    print_global_rules,
    print_header,
    print_mappings,
    print_transformations,
)
from mapping_engine.cli.session import MappingSession
from mapping_engine.exceptions import MappingEngineError
from mapping_engine.introspection.ddl_reader import DdlReader

# Initialize colorama
init(autoreset=True)


def _load_session(session_file: str, connection_id: Optional[str] = None) -> MappingSession:
    if Path(session_file).exists():
        return MappingSession.load(Path(session_file), connection_id=connection_id)
    return MappingSession(connection_id=connection_id)


def _fail(message: str):
    click.echo(f"{Fore.RED}Error: {message}")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """Dataflow Column Mapper - configure source to target column mappings."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@cli.command()
@click.argument("table_key")
@click.option("--ddl", "ddl_file", type=click.Path(exists=True), help="DDL file declaring the table")
@click.option("--connection", "connection_id", default=None, help="Platform connection id to introspect")
@click.option("--rules", default="", help="Comma-separated global rules to apply ('all' for every rule)")
@click.option(
    "--session",
    "session_file",
    default=lambda: str(Path(app_config.output_dir) / "mappings.json"),
    help="Session JSON file to update",
)
def derive(table_key, ddl_file, connection_id, rules, session_file):
    """Derive default mappings for TABLE_KEY from a DDL file or a platform connection."""
    print_header(f"Derive mappings: {table_key}")

    if not ddl_file and not connection_id:
        _fail("Provide --ddl or --connection")

    selected = None
    if ddl_file:
        with open(ddl_file, "r", encoding="utf-8", errors="ignore") as f:
            tables = DdlReader().read(f.read())

        if table_key not in tables:
            _fail(f"Table {table_key} not found in {ddl_file}. Found: {', '.join(sorted(tables)) or 'none'}")

        schema, _, table = table_key.partition(".")
        selected = [{
            "schema": schema,
            "table": table,
            "columns": [c.to_dict() for c in tables[table_key]],
        }]

    session = _load_session(session_file, connection_id)

    if not session.columns(table_key, selected):
        _fail(f"No columns found for {table_key} on connection {connection_id}")

    mappings = session.select_table(table_key, selected)

    if rules:
        rule_ids = None if rules.strip().lower() == "all" else [r.strip() for r in rules.split(",") if r.strip()]
        changed = session.apply_global_rules(table_key, rule_ids, selected)
        click.echo(f"{Fore.GREEN}Global rules changed {changed} mapping(s)")
        mappings = session.store.get_mappings(table_key)

    print_mappings(table_key, mappings)
    session.save(Path(session_file))
    click.echo(f"\n{Fore.GREEN}Saved to {session_file}")


@cli.command()
@click.argument("session_file", type=click.Path(exists=True))
@click.argument("table_key")
def show(session_file, table_key):
    """Show the mappings of TABLE_KEY."""
    session = MappingSession.load(Path(session_file))
    print_mappings(table_key, session.store.get_mappings(table_key))


@cli.command()
@click.argument("session_file", type=click.Path(exists=True))
@click.argument("table_key")
@click.option("--output", "-o", default=None, help="CSV file to write")
def export(session_file, table_key, output):
    """Export the mappings of TABLE_KEY to CSV."""
    session = MappingSession.load(Path(session_file))

    if output is None:
        table_name = table_key.split(".")[-1]
        output = str(Path(app_config.output_dir) / session.codec.default_filename(table_name))

    try:
        session.codec.export_to_file(session.store.get_mappings(table_key), Path(output))
    except MappingEngineError as e:
        _fail(str(e))

    click.echo(f"{Fore.GREEN}✅ Exported {table_key} to {output}")


@cli.command("import-csv")
@click.argument("session_file", type=click.Path())
@click.argument("table_key")
@click.argument("csv_file", type=click.Path(exists=True))
def import_csv(session_file, table_key, csv_file):
    """Merge mappings from CSV_FILE into TABLE_KEY."""
    session = _load_session(session_file)

    with open(csv_file, "r", encoding="utf-8", newline="") as f:
        text = f.read()

    try:
        mappings = session.import_csv(table_key, text)
    except MappingEngineError as e:
        _fail(str(e))

    print_mappings(table_key, mappings)
    session.save(Path(session_file))
    click.echo(f"\n{Fore.GREEN}Saved to {session_file}")


@cli.command("list-transformations")
@click.option("--custom", type=click.Path(exists=True), help="JSON file with custom function records")
def list_transformations(custom):
    """List available transformations by category."""
    print_header("Transformations")

    session = MappingSession()
    if custom:
        with open(custom, "r", encoding="utf-8") as f:
            session.add_custom_functions(json.load(f))

    print_transformations(session.catalog.grouped_transformations())


@cli.command("list-rules")
def list_rules():
    """List global rules in evaluation order."""
    print_header("Global Rules")
    print_global_rules(MappingSession().catalog.list_global_rules())
    click.echo(f"\n{Style.DIM}First matching rule wins.")


if __name__ == "__main__":
    cli()
