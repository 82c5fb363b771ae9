from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from task_graph_planner.core.errors import RunStateError
from task_graph_planner.core.model import (
    TaskGraphExecutionRun,
    TaskGraphNode,
    TaskGraphNodeRun,
    TaskGraphSpec,
)


@dataclass(frozen=True)
class AgentBinding:
    agent_id: str = ""
    agent_name: str = ""
    model: str = ""


AgentResolver = Callable[[TaskGraphNode], AgentBinding]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_execution_run(
    spec: TaskGraphSpec, resolve_agent: Optional[AgentResolver] = None
) -> TaskGraphExecutionRun:
    """Create a run with one pending node record per node, in declaration order."""
    node_runs: list[TaskGraphNodeRun] = []
    for n in spec.nodes:
        binding = resolve_agent(n) if resolve_agent else AgentBinding(agent_id=n.agent_id or "")
        node_runs.append(
            TaskGraphNodeRun(
                node_id=n.id,
                agent_id=binding.agent_id,
                agent_name=binding.agent_name,
                model=binding.model,
            )
        )
    return TaskGraphExecutionRun(run_id=str(uuid.uuid4()), created_at=utc_now_iso(), nodes=node_runs)


def _require(run: TaskGraphExecutionRun, node_id: str) -> TaskGraphNodeRun:
    node_run = run.get_node_run(node_id)
    if node_run is None:
        raise RunStateError(f"run {run.run_id} has no node {node_id}")
    return node_run


def start_node(run: TaskGraphExecutionRun, node_id: str) -> TaskGraphNodeRun:
    node_run = _require(run, node_id)
    if node_run.status != "pending":
        raise RunStateError(f"cannot start node {node_id}: status is {node_run.status}")
    node_run.status = "running"
    node_run.started_at = utc_now_iso()
    return node_run


def complete_node(run: TaskGraphExecutionRun, node_id: str, output: str = "") -> TaskGraphNodeRun:
    node_run = _require(run, node_id)
    if node_run.status != "running":
        raise RunStateError(f"cannot complete node {node_id}: status is {node_run.status}")
    node_run.status = "completed"
    node_run.output = output
    node_run.finished_at = utc_now_iso()
    return node_run


def fail_node(run: TaskGraphExecutionRun, node_id: str, error: str) -> TaskGraphNodeRun:
    """Mark a node as errored. Pending nodes may fail directly (e.g. skipped after an upstream error)."""
    node_run = _require(run, node_id)
    if node_run.status not in ("pending", "running"):
        raise RunStateError(f"cannot fail node {node_id}: status is {node_run.status}")
    node_run.status = "error"
    node_run.error = error
    node_run.finished_at = utc_now_iso()
    return node_run


def finish_run(run: TaskGraphExecutionRun) -> TaskGraphExecutionRun:
    unfinished = [r.node_id for r in run.nodes if r.status in ("pending", "running")]
    if unfinished:
        raise RunStateError(f"cannot finish run {run.run_id}: unfinished nodes {unfinished}")
    run.finished_at = utc_now_iso()
    return run
