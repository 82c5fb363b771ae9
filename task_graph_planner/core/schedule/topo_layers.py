from __future__ import annotations

from dataclasses import dataclass, field

from task_graph_planner.core.model import TaskGraphSpec


@dataclass(frozen=True)
class LayerSchedule:
    layers: list[list[str]]
    # Ids swept into the trailing layer because nothing else could become ready.
    fallback_layer: list[str] = field(default_factory=list)

    @property
    def cyclic(self) -> bool:
        return bool(self.fallback_layer)


def restricted_dependencies(spec: TaskGraphSpec) -> dict[str, set[str]]:
    """dependsOn per node, filtered to ids that are actually nodes of the graph."""
    node_ids = set(spec.node_ids())
    return {n.id: {d for d in (n.depends_on or []) if d in node_ids} for n in spec.nodes}


def plan_layers(spec: TaskGraphSpec) -> LayerSchedule:
    """Kahn-style layered topological sort.

    Nodes in one layer may run concurrently; each layer only depends on
    earlier ones. Dangling dependencies are ignored. If no remaining node
    can become ready (a cycle), the whole remainder becomes one final
    layer, reported as ``fallback_layer``.
    """

    deps = restricted_dependencies(spec)

    # dict keeps declaration order, so layers list ids in node order.
    remaining: dict[str, None] = dict.fromkeys(spec.node_ids())
    done: set[str] = set()
    layers: list[list[str]] = []

    while remaining:
        ready = [nid for nid in remaining if deps.get(nid, set()) <= done]

        if not ready:
            fallback = list(remaining)
            layers.append(fallback)
            return LayerSchedule(layers=layers, fallback_layer=fallback)

        layers.append(ready)
        for nid in ready:
            del remaining[nid]
            done.add(nid)

    return LayerSchedule(layers=layers)


def topo_layers(spec: TaskGraphSpec) -> list[list[str]]:
    return plan_layers(spec).layers


def ordering_violations(spec: TaskGraphSpec, layers: list[list[str]]) -> list[tuple[str, str]]:
    """Return (dependency, node) pairs whose layers are not strictly ordered."""
    layer_of: dict[str, int] = {}
    for i, layer in enumerate(layers):
        for nid in layer:
            layer_of.setdefault(nid, i)

    out: list[tuple[str, str]] = []
    for nid, node_deps in restricted_dependencies(spec).items():
        for dep in sorted(node_deps):
            if nid not in layer_of or dep not in layer_of:
                continue
            if layer_of[dep] >= layer_of[nid]:
                out.append((dep, nid))
    return out
