import json
import logging
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.box import ROUNDED, HEAVY, SIMPLE
from rich.text import Text
from rich.table import Table

from campfin.domain.interfaces.user_interface import UserInterface
from campfin.domain.models.common import Record, Records

logger = logging.getLogger(__name__)

MAX_COLUMNS = 8
MAX_CELL_WIDTH = 40

# Shown first when present, in this order
PREFERRED_COLUMNS = (
    "id", "candidate_id", "fec_candidate_id", "committee_id", "fec_committee_id",
    "name", "candidate", "committee_name", "party", "state", "district",
    "office", "amount", "date", "filing_date",
)


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    text = str(value) if _is_scalar(value) else json.dumps(value)
    if len(text) > MAX_CELL_WIDTH:
        text = text[:MAX_CELL_WIDTH - 3] + "..."
    return text


def select_columns(records: Records, max_columns: int = MAX_COLUMNS) -> List[str]:
    """Picks the scalar fields to tabulate: preferred names first, then first-seen order."""
    seen: Dict[str, None] = {}
    for record in records:
        for key, value in record.items():
            if _is_scalar(value):
                seen.setdefault(key, None)
    preferred = [name for name in PREFERRED_COLUMNS if name in seen]
    rest = [name for name in seen if name not in preferred]
    return (preferred + rest)[:max_columns]


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None, json_output: bool = False):
        """Initializes the display.

        Args:
            console: rich Console to print to; a new one is created if None.
            json_output: Print records as JSON instead of tables.
        """
        self.console = console or Console()
        self.json_output = json_output

    def display_records(self, records: Records, title: str, **kwargs: Any) -> None:
        """Displays records as a table (or JSON), one row per record."""
        logger.debug(f"display_records called: title={title}, count={len(records)}")
        if self.json_output:
            self.console.print_json(data=records)
            return

        if not records:
            self.display_info(f"{title}: no results.")
            return

        columns = select_columns(records)
        table = Table(title=f"{title} ({len(records)})", show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("#", style="cyan", justify="right")
        for column in columns:
            table.add_column(column, style="white")
        for i, record in enumerate(records, 1):
            table.add_row(str(i), *(_format_cell(record.get(column)) for column in columns))
        self.console.print(table)

    def display_record(self, record: Optional[Record], title: str, **kwargs: Any) -> None:
        """Displays one record as a field/value table (or JSON)."""
        if self.json_output:
            self.console.print_json(data=record)
            return

        if record is None:
            self.display_info(f"{title}: not found.")
            return

        table = Table(title=title, show_header=False, box=SIMPLE, border_style="cyan", padding=(0, 1))
        table.add_column("Field", style="bold cyan")
        table.add_column("Value", style="white")
        for key, value in record.items():
            table.add_row(key, _format_cell(value) if _is_scalar(value) else json.dumps(value))
        self.console.print(table)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style."""
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)
