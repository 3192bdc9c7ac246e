"""Display service for worktree listings"""
from typing import List

from rich.console import Console
from rich.table import Table

from workmux.constants import COLUMNS, SYMBOL_MAIN_WORKTREE, SYMBOL_NO, SYMBOL_YES
from workmux.models.worktree import WorktreeListing

console = Console()


class DisplayService:
    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def format_row(self, entry: WorktreeListing) -> List[str]:
        """Format one listing as table cells, in COLUMNS order."""
        values = {
            "handle": entry.handle + (SYMBOL_MAIN_WORKTREE if entry.is_main else ""),
            "branch": entry.branch,
            "tmux": SYMBOL_YES if entry.has_window else SYMBOL_NO,
            "unmerged": SYMBOL_YES if entry.has_unmerged else SYMBOL_NO,
            "path": str(entry.path),
        }
        return [values[col.key] for col in COLUMNS]

    def display_worktree_table(self, entries: List[WorktreeListing]) -> None:
        """Display a table of worktrees."""
        if not entries:
            console.print("No worktrees found")
            return

        table = Table()
        for col in COLUMNS:
            table.add_column(col.label, min_width=col.width or None, overflow="fold")

        for entry in entries:
            style = "cyan" if entry.is_main else ("yellow" if entry.has_unmerged else None)
            table.add_row(*self.format_row(entry), style=style)

        console.print(table)
