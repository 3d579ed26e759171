"""Console output for mappings and catalog entries."""
from typing import Dict, List

import click
from colorama import Fore, Style

from mapping_engine.schema.models import ColumnMapping, GlobalRule, RuleDefinition


def print_header(title: str):
    """Print a section header."""
    click.echo(f"\n{Fore.CYAN}{'━' * 45}")
    click.echo(f"{Fore.CYAN}{title}")
    click.echo(f"{Fore.CYAN}{'━' * 45}{Style.RESET_ALL}\n")


def print_mappings(table_key: str, mappings: List[ColumnMapping]):
    """Display a table's mappings, audit columns last."""
    regular = [m for m in mappings if not m.is_audit]
    audit = [m for m in mappings if m.is_audit]

    click.echo(f"{Fore.GREEN}✅ {table_key}: {len(regular)} mapping(s)")

    for i, m in enumerate(regular, 1):
        marker = f" {Fore.YELLOW}(derived){Style.RESET_ALL}" if m.derived else ""
        source_type = m.source_data_type or ""
        click.echo(
            f"{i:3d}. {m.source or '':25s} {source_type:15s} → "
            f"{m.target:25s} [{m.transformation}]{marker}"
        )

    if audit:
        click.echo(f"\n{Fore.YELLOW}Audit columns ({len(audit)}):")
        for m in audit:
            click.echo(f"{Fore.YELLOW}   • {m.target} [{m.transformation}]")


def print_transformations(groups: Dict[str, List[RuleDefinition]]):
    """Display transformations grouped by category."""
    for category, rules in groups.items():
        click.echo(f"{Fore.CYAN}{category}")
        for rule in rules:
            click.echo(f"   {rule.identifier:20s} {rule.label}")


def print_global_rules(rules: List[GlobalRule]):
    for i, rule in enumerate(rules, 1):
        click.echo(
            f"{i:2d}. {rule.identifier:25s} /{rule.pattern.pattern}/i → {rule.target_transformation}"
        )
