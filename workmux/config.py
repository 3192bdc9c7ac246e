"""Configuration handling for workmux"""

import copy
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import git
import yaml

from workmux.constants import (
    DEFAULT_AGENT,
    DEFAULT_STATUS_ICONS,
    DEFAULT_WINDOW_PREFIX,
    GLOBAL_CONFIG_PATH,
    REPO_CONFIG_FILES,
)
from workmux.exceptions import InvalidConfigError
from workmux.logging_config import get_logger

logger = get_logger(__name__)


class WorktreeNaming(Enum):
    """How a branch name is turned into a worktree/window name."""
    FULL = "full"
    BASENAME = "basename"

    def derive_name(self, branch_name: str) -> str:
        """Apply the strategy to a branch name (before prefix and slugify)."""
        if self is WorktreeNaming.BASENAME:
            segments = [s for s in branch_name.split("/") if s]
            return segments[-1] if segments else branch_name
        return branch_name


def validate_panes_config(panes: List[Dict[str, Any]]) -> None:
    """Validate a pane layout before any window is touched.

    Raises:
        InvalidConfigError: If the layout cannot be applied
    """
    if not isinstance(panes, list):
        raise InvalidConfigError("'panes' must be a list")

    focused = 0
    for i, pane in enumerate(panes):
        if not isinstance(pane, dict):
            raise InvalidConfigError(f"Pane {i} must be a mapping, got {type(pane).__name__}")

        split = pane.get("split")
        if i == 0 and split is not None:
            raise InvalidConfigError("The first pane cannot have a 'split'; it reuses the window's pane")
        if i > 0 and split not in ("horizontal", "vertical"):
            raise InvalidConfigError(
                f"Pane {i} needs 'split' set to 'horizontal' or 'vertical', got {split!r}"
            )
        if pane.get("size") is not None and pane.get("percentage") is not None:
            raise InvalidConfigError(f"Pane {i} cannot set both 'size' and 'percentage'")
        percentage = pane.get("percentage")
        if percentage is not None and not (isinstance(percentage, int) and 1 <= percentage <= 100):
            raise InvalidConfigError(f"Pane {i} 'percentage' must be between 1 and 100")
        if pane.get("focus"):
            focused += 1

    if focused > 1:
        raise InvalidConfigError("Only one pane can have 'focus: true'")


def _merge_layer(base: Dict[str, Any], layer: Dict[str, Any]) -> Dict[str, Any]:
    """Merge a config layer on top of base. Lists replace; mappings merge."""
    merged = copy.deepcopy(base)
    for key, value in layer.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict) and key != "agents":
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read one YAML config file, returning an empty mapping for empty files."""
    try:
        with open(path, encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as e:
        raise InvalidConfigError(f"Could not parse {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigError(f"{path} must contain a mapping at the top level")
    logger.debug(f"Loaded config layer from {path}")
    return data


def _find_repo_root(start: str) -> Optional[Path]:
    try:
        repo = git.Repo(start, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
        return None
    try:
        return Path(repo.working_tree_dir) if repo.working_tree_dir else None
    finally:
        repo.close()


@dataclass
class Config:
    """Configuration for workmux with validation."""

    # Repository layout
    main_branch: Optional[str] = None  # None = ask git for the default branch
    worktree_dir: Optional[str] = None  # None = <parent>/<repo>__worktrees
    worktree_naming: WorktreeNaming = WorktreeNaming.FULL
    worktree_prefix: Optional[str] = None
    window_prefix: str = DEFAULT_WINDOW_PREFIX

    # Agent and window layout
    agent: str = DEFAULT_AGENT
    panes: Optional[List[Dict[str, Any]]] = None

    # Hooks, keyed by phase
    pre_create: List[str] = field(default_factory=list)
    post_create: List[str] = field(default_factory=list)
    pre_delete: List[str] = field(default_factory=list)

    # Files copied or symlinked from the main worktree
    files: Dict[str, List[str]] = field(default_factory=lambda: {"copy": [], "symlink": []})

    # Window status icons
    status_format: bool = True
    status_icons: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_STATUS_ICONS))

    # Per-agent overrides, applied by Config.load(agent=...)
    agents: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_naming()
        self._validate_main_branch()
        self._validate_hooks()
        self._validate_files()
        self._validate_panes()
        self._validate_status_icons()

    def _validate_naming(self):
        """Accept the naming strategy as enum or string."""
        if isinstance(self.worktree_naming, str):
            try:
                self.worktree_naming = WorktreeNaming(self.worktree_naming.lower())
            except ValueError:
                allowed = [n.value for n in WorktreeNaming]
                raise InvalidConfigError(
                    f"worktree_naming must be one of {allowed}, got '{self.worktree_naming}'"
                )
        if self.window_prefix is None:
            self.window_prefix = ""

    def _validate_main_branch(self):
        """Validate main_branch is not blank when set."""
        if self.main_branch is not None:
            if not str(self.main_branch).strip():
                raise InvalidConfigError("main_branch cannot be empty")
            self.main_branch = str(self.main_branch).strip()

    def _validate_hooks(self):
        """Validate hook lists contain only command strings."""
        for phase in ("pre_create", "post_create", "pre_delete"):
            commands = getattr(self, phase)
            if commands is None:
                setattr(self, phase, [])
                continue
            if not isinstance(commands, list) or not all(isinstance(c, str) for c in commands):
                raise InvalidConfigError(f"{phase} must be a list of shell commands")

    def _validate_files(self):
        """Validate the copy/symlink pattern lists."""
        files = self.files or {}
        unknown = set(files) - {"copy", "symlink"}
        if unknown:
            raise InvalidConfigError(f"Unknown 'files' keys: {sorted(unknown)}")
        self.files = {
            "copy": list(files.get("copy") or []),
            "symlink": list(files.get("symlink") or []),
        }

    def _validate_panes(self):
        """Validate pane layout if configured."""
        if self.panes is not None:
            validate_panes_config(self.panes)

    def _validate_status_icons(self):
        """Fill in any missing status icons with defaults."""
        self.status_icons = {**DEFAULT_STATUS_ICONS, **(self.status_icons or {})}

    def window_panes(self) -> List[Dict[str, Any]]:
        """Return the configured pane layout, or the default agent + shell layout."""
        if self.panes is not None:
            return self.panes
        return [
            {"command": self.agent, "focus": True},
            {"split": "horizontal"},
        ]

    def hooks_for(self, phase: str) -> List[str]:
        """Get the hook commands configured for a phase name."""
        return list(getattr(self, phase, None) or [])

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        data = {f.name: copy.deepcopy(getattr(self, f.name)) for f in fields(self)}
        data["worktree_naming"] = self.worktree_naming.value
        return data

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    def with_agent(self, agent: Optional[str]) -> "Config":
        """Return a new Config for the given agent, applying its overrides."""
        if not agent:
            return self
        data = self.to_dict()
        data = _merge_layer(data, self.agents.get(agent, {}))
        data["agent"] = agent
        return Config.from_dict(data)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        unknown = set(config_dict) - known_fields
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)

    @classmethod
    def load(
        cls,
        agent: Optional[str] = None,
        repo_root: Optional[str] = None,
        global_path: Optional[str] = None,
    ) -> "Config":
        """Load layered configuration.

        Layers, later wins: defaults, global config file, repository
        .workmux.yaml, then the `agents.<agent>` overrides.

        Args:
            agent: Agent to load overrides for (also becomes `config.agent`)
            repo_root: Repository root; detected from the working directory if omitted
            global_path: Global config file; defaults to ~/.config/workmux/config.yaml

        Returns:
            A validated Config snapshot
        """
        data: Dict[str, Any] = {}

        global_file = Path(os.path.expanduser(global_path or GLOBAL_CONFIG_PATH))
        if global_file.is_file():
            data = _merge_layer(data, _read_yaml(global_file))

        root = Path(repo_root) if repo_root else _find_repo_root(os.getcwd())
        if root is not None:
            for name in REPO_CONFIG_FILES:
                candidate = root / name
                if candidate.is_file():
                    data = _merge_layer(data, _read_yaml(candidate))
                    break

        return cls.from_dict(data).with_agent(agent)
