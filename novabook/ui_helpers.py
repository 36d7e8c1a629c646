import json
import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Environment variable controlling the CLI output mode.
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "NOVABOOK_CLI_OUTPUT"

_console = Console()

BOOK_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("ID", "id"), ("ISBN", "isbn"), ("Title", "title"), ("Author", "author"), ("Stock", "stock"),
)
MEMBER_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("ID", "id"), ("Name", "name"), ("Role", "role"), ("Active", "active"),
)
LOAN_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("ID", "id"), ("Member", "member_id"), ("Book", "book_id"), ("Loaned", "date_loaned"),
    ("Due", "date_due"), ("Returned", "returned"), ("Fine", "fine"),
)
REQUEST_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("ID", "id"), ("User", "user_id"), ("Name", "user_name"), ("Email", "user_email"), ("Status", "status"),
)

STAT_LABELS: Tuple[Tuple[str, str], ...] = (
    ("total_titles", "Total Titles"),
    ("total_copies", "Copies On Shelf"),
    ("total_members", "Members"),
    ("active_loans", "Active Loans"),
    ("overdue_loans", "Overdue Loans"),
)


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode
    # Invalid values are ignored; the current default stays


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float):
        return f"{value:.2f}"
    return "" if value is None else str(value)


def print_list_result(items: List[Any], columns: Sequence[Tuple[str, str]], title: str, empty_message: str,
                      serialize: Optional[Callable[[Any], Dict[str, Any]]] = None) -> None:
    """Print entities in the current output mode.
    ``serialize`` turns an item into a dict (default: ``item.to_dict()``).
    - plain: one ' | '-separated line per item, or ``empty_message``
    - json: JSON array of the serialized items
    - rich: Rich table
    """
    mode = get_output_mode()

    if not items:
        # Same message in every mode so the empty state stays predictable
        print(empty_message)
        return

    serialize = serialize or (lambda item: item.to_dict())
    rows = [serialize(item) for item in items]
    if mode == "json":
        print(json.dumps(rows, ensure_ascii=False, default=str))
    elif mode == "rich":
        table = Table(title=title, show_lines=True, header_style="bold cyan")
        for header, _ in columns:
            table.add_column(header)
        for row in rows:
            table.add_row(*(_format(row.get(key)) for _, key in columns))
        _console.print(table)
    else:
        for row in rows:
            print(" | ".join(_format(row.get(key)) for _, key in columns))


def print_item_result(item: Any, heading: str) -> None:
    mode = get_output_mode()
    data = item.to_dict()
    if mode == "json":
        print(json.dumps(data, ensure_ascii=False, default=str))
    elif mode == "rich":
        content = "\n".join(f"[bold]{key}:[/] {_format(value)}" for key, value in data.items())
        _console.print(Panel.fit(content, title=heading, border_style="blue"))
    else:
        print(heading)
        for key, value in data.items():
            print(f"{key}: {_format(value)}")


def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print statistics in the current output mode.
    - plain: 'Label: value' lines
    - json: JSON object
    - rich: Panel with the main metrics
    """
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {stats.get(key, 0)}" for key, label in STAT_LABELS)
        _console.print(Panel.fit(content, title="Stats", border_style="blue"))
    else:
        for key, label in STAT_LABELS:
            print(f"{label}: {stats.get(key, 0)}")
