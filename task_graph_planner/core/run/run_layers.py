from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from task_graph_planner.core.model import TaskGraphExecutionRun, TaskGraphNode, TaskGraphSpec
from task_graph_planner.core.run.execution import (
    AgentResolver,
    complete_node,
    fail_node,
    finish_run,
    new_execution_run,
    start_node,
)
from task_graph_planner.core.schedule.topo_layers import plan_layers, restricted_dependencies

logger = logging.getLogger(__name__)


NodeExecutor = Callable[[TaskGraphNode, dict[str, str]], str]


def run_task_graph(
    spec: TaskGraphSpec,
    execute_node: NodeExecutor,
    *,
    workers: int = 4,
    resolve_agent: Optional[AgentResolver] = None,
) -> TaskGraphExecutionRun:
    """Execute a normalized spec layer by layer.

    Nodes within a layer run concurrently; a layer starts only after every
    node of the previous one reached completed or error. ``execute_node``
    receives the node and the outputs of its completed dependencies and
    returns the node output; raising marks the node as error.

    A node with an errored dependency is not executed and is marked error
    ("upstream failed"). There are no retries.
    """

    schedule = plan_layers(spec)
    if schedule.cyclic:
        logger.warning(
            "Dependency cycle: scheduling remaining nodes in one fallback layer",
            extra={"fallback_layer": schedule.fallback_layer},
        )

    deps = restricted_dependencies(spec)
    nodes_by_id = {n.id: n for n in spec.nodes}
    run = new_execution_run(spec, resolve_agent)
    outputs: dict[str, str] = {}
    failed: set[str] = set()

    def _execute(node: TaskGraphNode, upstream: dict[str, str]) -> tuple[str, Optional[str], Optional[str]]:
        try:
            return node.id, execute_node(node, upstream), None
        except Exception as e:
            logger.exception("Node failed", extra={"node_id": node.id, "run_id": run.run_id})
            return node.id, None, f"{type(e).__name__}: {e}"

    with ThreadPoolExecutor(max_workers=max(1, workers)) as ex:
        for layer_idx, layer in enumerate(schedule.layers):
            futures = []
            for nid in layer:
                blocked = sorted(d for d in deps.get(nid, set()) if d in failed)
                if blocked:
                    fail_node(run, nid, "upstream failed: " + ", ".join(blocked))
                    failed.add(nid)
                    continue
                upstream = {d: outputs[d] for d in sorted(deps.get(nid, set())) if d in outputs}
                start_node(run, nid)
                futures.append(ex.submit(_execute, nodes_by_id[nid], upstream))

            logger.info(
                "Running layer",
                extra={"run_id": run.run_id, "layer": layer_idx, "size": len(futures)},
            )

            # Layer barrier.
            for f in futures:
                nid, output, error = f.result()
                if error is None:
                    complete_node(run, nid, output or "")
                    outputs[nid] = output or ""
                else:
                    fail_node(run, nid, error)
                    failed.add(nid)

    return finish_run(run)
