from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Protocol

from task_graph_planner.core.errors import PlannerError
from task_graph_planner.core.io.extract_json import extract_first_json_object
from task_graph_planner.core.model import SPEC_VERSION, TaskGraphSpec
from task_graph_planner.core.normalize.normalize_spec import normalize_task_graph_spec
from task_graph_planner.core.sanitize.sanitize_spec import sanitize_task_graph_spec

logger = logging.getLogger(__name__)

DEFAULT_MAX_NODES = 8
MAX_NODES_CAP = 20
MAX_AGENTS_IN_PROMPT = 12


@dataclass(frozen=True)
class AgentSummary:
    id: str
    name: str = ""
    model: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)


class PlannerLLM(Protocol):
    def complete(self, *, system: str, user: str, model: str) -> str: ...


def clamp_max_nodes(max_nodes: int) -> int:
    return max(1, min(MAX_NODES_CAP, max_nodes))


def build_planner_messages(
    goal: str,
    allowed_agents: list[AgentSummary],
    template_hint: Optional[str] = None,
    max_nodes: int = DEFAULT_MAX_NODES,
) -> tuple[str, str]:
    """Return (system, user) prompts asking for a task graph DAG as JSON."""
    system = "\n".join(
        [
            "You are a task decomposition and orchestration planner (Task Graph Planner).",
            "Goal: split the user's overall task into an executable subtask graph (DAG) "
            "that supports both sequential and parallel steps.",
            "Output JSON only. No explanations, no Markdown.",
            "Constraints:",
            f"- number of nodes <= {clamp_max_nodes(max_nodes)}",
            "- every node must have id/title/description/dependsOn[]",
            "- dependsOn may only reference node ids from this output",
            "- agentId is optional; if given it must be one of allowedAgents[].id",
            f'- version is always "{SPEC_VERSION}"',
            "Output JSON schema:",
            f"{{ version: '{SPEC_VERSION}', goal: string, "
            "nodes: [{id,title,description,dependsOn,agentId?}], "
            "edges?: [{from,to,kind?}], finalNodeId?: string, templateHint?: string }",
        ]
    )

    agents = [asdict(a) for a in allowed_agents[:MAX_AGENTS_IN_PROMPT]]
    parts = [f"[Overall goal]\n{goal.strip()}", ""]
    if template_hint:
        parts += [f"[Template hint]\n{template_hint}", ""]
    parts += [
        f"[Available experts/models (allowedAgents)]\n{json.dumps(agents, indent=2, ensure_ascii=False)}",
        "",
        "Split the task into a DAG using the available experts. Parallel nodes should be as "
        "independent of each other as possible.",
    ]
    return system, "\n".join(parts)


def plan_task_graph(
    *,
    goal: str,
    llm: PlannerLLM,
    model: str,
    allowed_agents: list[AgentSummary],
    template_hint: Optional[str] = None,
    max_nodes: int = DEFAULT_MAX_NODES,
) -> TaskGraphSpec:
    """Ask the LLM for a task graph and return it normalized and sanitized.

    Raises PlannerError when the request is unusable or the model returns no
    JSON, and SpecRejectedError when the JSON is not a valid spec. Models
    sometimes repeat a node id; later repeats are dropped before strict
    validation, which would otherwise reject them as E_DUPLICATE_ID.
    """

    if not goal or not goal.strip():
        raise PlannerError(code="E_PLANNER_NO_GOAL", message="goal is required", path="goal")
    if not allowed_agents:
        raise PlannerError(
            code="E_PLANNER_NO_AGENTS",
            message="at least one allowed agent is required",
            path="agents",
        )

    system, user = build_planner_messages(goal, allowed_agents, template_hint, max_nodes)
    raw_text = llm.complete(system=system, user=user, model=model) or ""

    parsed = extract_first_json_object(raw_text)
    if parsed is None:
        raise PlannerError(
            code="E_PLANNER_NO_JSON",
            message=f"planner returned non-JSON output: {raw_text[:200]!r}",
            path="plan",
        )

    normalized = normalize_task_graph_spec(_drop_repeated_nodes(parsed))
    safe = sanitize_task_graph_spec(normalized, [a.id for a in allowed_agents])
    logger.info(
        "Planned task graph",
        extra={"model": model, "nodes": len(safe.nodes), "edges": len(safe.edges)},
    )
    return safe


def _drop_repeated_nodes(parsed: Any) -> Any:
    """Keep the first node object for each id; anything malformed is left for validation."""
    if not isinstance(parsed, dict) or not isinstance(parsed.get("nodes"), list):
        return parsed

    seen: set[str] = set()
    nodes: list[Any] = []
    for n in parsed["nodes"]:
        nid = n.get("id") if isinstance(n, dict) else None
        if isinstance(nid, str) and nid:
            if nid in seen:
                continue
            seen.add(nid)
        nodes.append(n)
    return {**parsed, "nodes": nodes}
