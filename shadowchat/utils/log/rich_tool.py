"""Rich console output for relay start-up."""

from typing import Any, Mapping, Optional

from rich import box
from rich.align import Align
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from .logging_tool import rich_logger


def print_header(title: str, subtitle: Optional[str] = None) -> None:
    """Centered banner between two rules."""
    console = rich_logger.console
    console.print(Rule(style="blue"))
    console.print(Align.center(Text(title, style="bold bright_blue")))
    if subtitle:
        console.print(Align.center(Text(subtitle, style="dim")))
    console.print(Rule(style="blue"))


def print_dict(data: Mapping[str, Any], title: Optional[str] = None) -> None:
    """Two-column key/value table. Empty values are shown as a dash."""
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("setting", style="cyan", no_wrap=True)
    table.add_column("value")
    for key, value in data.items():
        if value is None or value == []:
            shown = "-"
        elif isinstance(value, (list, tuple)):
            shown = ", ".join(str(item) for item in value)
        else:
            shown = str(value)
        table.add_row(key, shown)
    rich_logger.console.print(table)
