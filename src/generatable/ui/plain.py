"""
plain.py

PURPOSE: Plain text output formatting for the CLI.
DEPENDENCIES: rich

ARCHITECTURE NOTES:
This module provides formatted console output using Rich.
It handles:
- Model text and decoded values
- Messages and errors
- Settings tables
"""

import json

from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

# Global console instance
console = Console()


def print_message(text: str) -> None:
    """Print plain text."""
    console.print(text, markup=False, highlight=False)


def print_error(text: str) -> None:
    """Print an error message."""
    console.print(f"[red]{escape(text)}[/red]")


def print_dim(text: str) -> None:
    """Print secondary information."""
    console.print(f"[dim]{escape(text)}[/dim]")


def print_json(data: BaseModel | str) -> None:
    """Print a model or a JSON string, syntax highlighted."""
    if isinstance(data, BaseModel):
        data = data.model_dump_json(by_alias=True, indent=2)
    console.print(Syntax(data, "json", theme="ansi_dark", background_color="default"))


def print_description(title: str, description: str) -> None:
    """Print a type's JSON description in a panel."""
    panel = Panel(
        Syntax(description, "json", theme="ansi_dark", background_color="default"),
        title=Text(title, style="bold"),
        border_style="blue",
    )
    console.print(panel)


def print_settings(rows: dict[str, object]) -> None:
    """Print resolved settings as a two-column table."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in rows.items():
        table.add_row(key, json.dumps(value) if not isinstance(value, str) else value)
    console.print(table)
