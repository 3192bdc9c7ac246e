"""Shared constants for workmux."""

from dataclasses import dataclass
from typing import List


# Configuration file locations
REPO_CONFIG_FILES = (".workmux.yaml", ".workmux.yml")
GLOBAL_CONFIG_PATH = "~/.config/workmux/config.yaml"

DEFAULT_WINDOW_PREFIX = "wm-"
DEFAULT_AGENT = "claude"

# Worktrees live beside the repository: <parent>/<repo>__worktrees/<handle>
WORKTREE_DIR_SUFFIX = "__worktrees"

# Git config key recording which ref a branch was created from
BRANCH_BASE_CONFIG_KEY = "workmux-base"

# Directory (inside a worktree) holding rendered prompt files
PROMPT_DIR = ".workmux"

# Window-scoped tmux option holding the status icon
STATUS_OPTION = "@workmux_status"

DEFAULT_STATUS_ICONS = {
    "working": "🤖",
    "waiting": "💬",
    "done": "✅",
}

# Used for every multi-worktree expansion unless --branch-template is given
DEFAULT_BRANCH_TEMPLATE = (
    "{{ base_name }}"
    "{% if agent %}-{{ agent | slugify }}{% endif %}"
    "{% for key, value in foreach_vars %}-{{ value | slugify }}{% endfor %}"
    "{% if num %}-{{ num }}{% endif %}"
)

# Template variables that foreach rows may not redefine
RESERVED_TEMPLATE_KEYS = ("base_name", "num", "index", "foreach_vars")


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("handle", "Handle", 30),
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("tmux", "Tmux", 6),
    ColumnDefinition("unmerged", "Unmerged", 9),
    ColumnDefinition("path", "Path"),
]


# Symbol constants
SYMBOL_YES = "✓"
SYMBOL_NO = "-"
SYMBOL_MAIN_WORKTREE = " (main)"
