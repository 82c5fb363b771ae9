from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from task_graph_planner.core.model import TaskGraphNode, TaskGraphSpec
from task_graph_planner.core.normalize.normalize_spec import normalize_task_graph_spec


def sanitize_task_graph_spec(spec: TaskGraphSpec, allowed_agent_ids: Iterable[str]) -> TaskGraphSpec:
    """Restrict planner output to what the session can actually run.

    - dependsOn entries naming unknown node ids are dropped
    - agentId values outside allowed_agent_ids are cleared
    - a repeated node id keeps its first occurrence only

    The result is normalized again so edges cover the remaining dependencies.
    """

    allowed = set(allowed_agent_ids)
    node_ids = set(spec.node_ids())

    seen: set[str] = set()
    nodes: list[TaskGraphNode] = []
    for n in spec.nodes:
        if n.id in seen:
            continue
        seen.add(n.id)
        nodes.append(
            replace(
                n,
                depends_on=[d for d in (n.depends_on or []) if d in node_ids],
                agent_id=n.agent_id if n.agent_id and n.agent_id in allowed else None,
            )
        )

    return normalize_task_graph_spec(replace(spec, nodes=nodes))
