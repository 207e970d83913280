import sys
from typing import List, NoReturn, Optional, overload

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

_console = Console()
_err_console = Console(stderr=True)


def is_interactive() -> bool:
    """Check if we are in an interactive TTY session."""
    return sys.stdin.isatty() and sys.stdout.isatty()


def print_success(message: str) -> None:
    _console.print(f"[bold green]SUCCESS:[/] {escape(message)}")


def print_warning(message: str) -> None:
    _err_console.print(f"[bold yellow]WARNING:[/] {escape(message)}")


@overload
def print_error(message: str) -> None: ...


@overload
def print_error(message: str, exit_code: int) -> NoReturn: ...


def print_error(message: str, exit_code: Optional[int] = None) -> None:
    """Print an error message and optionally exit."""
    _err_console.print(f"[bold red]ERROR:[/] {escape(message)}")
    if exit_code is not None:
        sys.exit(exit_code)


def print_table(title: str, columns: List[str], rows: List[List[str]]) -> None:
    table = Table(title=escape(title))
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*(escape(cell) for cell in row))
    _console.print(table)


def ask_confirm(prompt_text: str, default: bool = False) -> bool:
    """Ask for yes/no confirmation; non-interactive sessions get the default."""
    if not is_interactive():
        return default
    return bool(Confirm.ask(prompt_text, default=default))
