"""Prompt loading and front-matter parsing"""

import os
import shlex
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from workmux.exceptions import ExternalCommandError, InvalidConfigError, WorkmuxError
from workmux.logging_config import get_logger
from workmux.templating import ForeachRows, zip_foreach_columns

logger = get_logger(__name__)

FRONTMATTER_DELIMITER = "---"


@dataclass
class PromptDocument:
    """A prompt body plus the metadata parsed from its front matter."""
    body: str
    foreach: Optional[Dict[str, List[Any]]] = None

    def foreach_rows(self) -> Optional[ForeachRows]:
        """Row matrix defined by the front matter, if any."""
        if self.foreach is None:
            return None
        return zip_foreach_columns(self.foreach, "prompt frontmatter")


def parse_prompt_document(text: str, allow_frontmatter: bool) -> PromptDocument:
    """Split optional YAML front matter from a prompt.

    Inline prompts (-p) are never parsed for front matter, so a prompt that
    happens to start with '---' is kept as-is.
    """
    if not allow_frontmatter or not text.startswith(FRONTMATTER_DELIMITER):
        return PromptDocument(body=text)

    lines = text.splitlines(keepends=True)
    end = None
    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == FRONTMATTER_DELIMITER:
            end = i
            break
    if end is None:
        return PromptDocument(body=text)

    try:
        meta = yaml.safe_load("".join(lines[1:end])) or {}
    except yaml.YAMLError as e:
        raise InvalidConfigError(f"Could not parse prompt frontmatter: {e}")
    if not isinstance(meta, dict):
        raise InvalidConfigError("Prompt frontmatter must be a mapping")

    foreach = meta.get("foreach")
    if foreach is not None:
        if not isinstance(foreach, dict) or not all(isinstance(v, list) for v in foreach.values()):
            raise InvalidConfigError("'foreach' in frontmatter must map names to lists of values")

    body = "".join(lines[end + 1:]).lstrip("\n")
    return PromptDocument(body=body, foreach=foreach)


def _edit_prompt() -> str:
    """Open the user's editor on an empty file and return what they wrote."""
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
    with tempfile.NamedTemporaryFile("w", suffix=".md", prefix="workmux-prompt-", delete=False) as tmp:
        path = tmp.name
    try:
        result = subprocess.run(shlex.split(editor) + [path])
        if result.returncode != 0:
            raise ExternalCommandError(editor, message="editor exited with an error", status=result.returncode)
        return Path(path).read_text(encoding="utf-8")
    finally:
        os.unlink(path)


def load_prompt(
    inline: Optional[str] = None,
    prompt_file: Optional[str] = None,
    use_editor: bool = False,
) -> Optional[PromptDocument]:
    """Load a prompt from exactly one source.

    Returns:
        The parsed prompt, or None when no source was given
    """
    sources = [s for s in (inline is not None, prompt_file is not None, use_editor) if s]
    if len(sources) > 1:
        raise WorkmuxError("Use only one of --prompt, --prompt-file and --prompt-editor")

    if inline is not None:
        return parse_prompt_document(inline, allow_frontmatter=False)

    if prompt_file is not None:
        path = Path(prompt_file)
        if not path.is_file():
            raise WorkmuxError(f"Prompt file not found: {prompt_file}")
        logger.debug(f"Loading prompt from {path}")
        return parse_prompt_document(path.read_text(encoding="utf-8"), allow_frontmatter=True)

    if use_editor:
        text = _edit_prompt()
        if not text.strip():
            raise WorkmuxError("Aborting: the prompt is empty")
        return parse_prompt_document(text, allow_frontmatter=True)

    return None
