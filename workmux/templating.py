"""Template rendering and multi-worktree spec generation.

Branch names and prompt bodies are Jinja2 templates rendered with
StrictUndefined, so a reference to an undefined variable is an error
rather than an empty string.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

import jinja2
from slugify import slugify

from workmux.constants import DEFAULT_BRANCH_TEMPLATE, RESERVED_TEMPLATE_KEYS
from workmux.exceptions import (
    AmbiguousExpansionError,
    EmptyExpansionError,
    TemplateRenderError,
)
from workmux.logging_config import get_logger
from workmux.models.worktree import WorktreeSpec

logger = get_logger(__name__)

ForeachRows = List[Dict[str, str]]


def create_template_env() -> jinja2.Environment:
    """Create the Jinja2 environment used for branch names and prompts."""
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters["slugify"] = lambda value: slugify(str(value))
    return env


def render(env: jinja2.Environment, template: str, context: Mapping[str, Any]) -> str:
    """Render a template string, turning Jinja2 failures into TemplateRenderError."""
    try:
        return env.from_string(template).render(**context)
    except jinja2.TemplateError as e:
        raise TemplateRenderError(template, str(e))


def render_prompt_body(body: str, env: jinja2.Environment, context: Mapping[str, Any]) -> str:
    """Render a prompt body with one spec's template context."""
    return render(env, body, context)


def zip_foreach_columns(columns: Mapping[str, Sequence[Any]], source: str) -> ForeachRows:
    """Turn {var: [values...]} into rows, zipping values by position.

    Args:
        columns: Variable name to its list of values
        source: Where the matrix came from, for error messages

    Returns:
        One dict per row, keys in column order
    """
    if not columns:
        raise AmbiguousExpansionError(f"{source}: foreach matrix defines no variables")

    lengths = {name: len(values) for name, values in columns.items()}
    if len(set(lengths.values())) != 1:
        detail = ", ".join(f"{name}={length}" for name, length in lengths.items())
        raise AmbiguousExpansionError(
            f"{source}: all foreach variables must have the same number of values ({detail})"
        )

    names = list(columns)
    row_count = next(iter(lengths.values()))
    return [
        {name: str(columns[name][i]) for name in names}
        for i in range(row_count)
    ]


def parse_foreach_matrix(spec: str) -> ForeachRows:
    """Parse a --foreach string such as "platform:ios,android;lang:swift,kotlin"."""
    columns: Dict[str, List[str]] = {}
    for part in spec.split(";"):
        part = part.strip()
        if not part:
            continue
        if ":" not in part:
            raise AmbiguousExpansionError(
                f"Invalid --foreach entry '{part}'. Use the format name:value1,value2"
            )
        name, raw_values = part.split(":", 1)
        name = name.strip()
        values = [v.strip() for v in raw_values.split(",") if v.strip()]
        if not name or not values:
            raise AmbiguousExpansionError(
                f"Invalid --foreach entry '{part}'. Use the format name:value1,value2"
            )
        if name in columns:
            raise AmbiguousExpansionError(f"--foreach defines '{name}' more than once")
        columns[name] = values
    return zip_foreach_columns(columns, "--foreach")


def validate_expansion_request(
    agents: Sequence[str],
    count: Optional[int],
    has_foreach: bool,
    explicit_name: Optional[str] = None,
    with_changes: bool = False,
) -> None:
    """Reject flag combinations that don't name exactly one expansion source.

    Raises:
        AmbiguousExpansionError: On conflicting multi-worktree flags
    """
    if count is not None and count < 1:
        raise AmbiguousExpansionError(f"--count must be at least 1, got {count}")

    if count is not None and len(agents) > 1:
        raise AmbiguousExpansionError(
            f"--count can only be used with zero or one --agent, but {len(agents)} were provided"
        )

    if with_changes and (len(agents) > 1 or (count or 1) > 1 or has_foreach):
        raise AmbiguousExpansionError(
            "--with-changes creates a single worktree and cannot be combined with "
            "multiple --agent flags, --count or --foreach"
        )

    produces_many = len(agents) > 1 or (count is not None and count > 1) or has_foreach
    if explicit_name is not None and produces_many:
        raise AmbiguousExpansionError(
            "--name cannot be used with multi-worktree generation (multiple --agent, "
            "--count, or --foreach). Set worktree_naming/worktree_prefix in config instead."
        )


def _row_context(base_name: str, row: Mapping[str, str], index: int) -> Dict[str, Any]:
    reserved = [key for key in row if key in RESERVED_TEMPLATE_KEYS]
    if reserved:
        raise AmbiguousExpansionError(
            f"foreach variables cannot use reserved names: {', '.join(reserved)}"
        )
    context: Dict[str, Any] = {
        "base_name": base_name,
        "agent": row.get("agent"),
        "num": None,
        "index": index,
        "foreach_vars": [(k, v) for k, v in row.items() if k != "agent"],
    }
    context.update(row)
    return context


def generate_worktree_specs(
    base_name: str,
    agents: Sequence[str],
    count: Optional[int],
    foreach_rows: Optional[ForeachRows],
    env: jinja2.Environment,
    branch_template: Optional[str] = None,
) -> List[WorktreeSpec]:
    """Expand one creation request into concrete worktree specs.

    Expansion sources, first match wins:

    * ``foreach_rows``: one spec per row, in row order. A row's ``agent``
      key (or the single ``--agent``) tags the spec.
    * several agents: one spec per agent, in input order.
    * ``count`` > 1: that many numbered specs for zero or one agent.
    * otherwise: a single spec for ``base_name`` unchanged.

    Raises:
        AmbiguousExpansionError: On conflicting sources
        EmptyExpansionError: If nothing would be created
        TemplateRenderError: If the branch template can't be rendered
    """
    validate_expansion_request(agents, count, foreach_rows is not None)
    template = branch_template or DEFAULT_BRANCH_TEMPLATE
    contexts: List[Dict[str, Any]] = []

    if foreach_rows is not None:
        if len(agents) > 1:
            logger.warning("foreach matrix overrides the --agent list; agents come from rows")
        if count is not None:
            logger.warning("foreach matrix overrides --count")
        default_agent = agents[0] if len(agents) == 1 else None
        for index, row in enumerate(foreach_rows):
            context = _row_context(base_name, row, index)
            if context["agent"] is None:
                context["agent"] = default_agent
            contexts.append(context)
    elif len(agents) > 1:
        for index, agent in enumerate(agents):
            contexts.append({
                "base_name": base_name,
                "agent": agent,
                "num": None,
                "index": index,
                "foreach_vars": [],
            })
    elif count is not None and count > 1:
        agent = agents[0] if agents else None
        for index in range(count):
            contexts.append({
                "base_name": base_name,
                "agent": agent,
                "num": index + 1,
                "index": index,
                "foreach_vars": [],
            })
    else:
        # Nothing drives the template: reuse the base name unmodified
        agent = agents[0] if agents else None
        return [WorktreeSpec(
            branch_name=base_name,
            agent=agent,
            template_context={
                "base_name": base_name,
                "agent": agent,
                "num": None,
                "index": 0,
                "foreach_vars": [],
            },
        )]

    if not contexts:
        raise EmptyExpansionError(base_name)

    specs = []
    for context in contexts:
        branch_name = render(env, template, context).strip()
        if not branch_name:
            raise TemplateRenderError(template, f"rendered an empty branch name for {context}")
        specs.append(WorktreeSpec(branch_name=branch_name, agent=context["agent"], template_context=context))

    logger.debug(f"Generated {len(specs)} worktree specs from '{base_name}'")
    return specs
