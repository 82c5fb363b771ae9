from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional


SPEC_VERSION = "2.0"

EdgeKind = Literal["data", "control"]
NodeStatus = Literal["pending", "running", "completed", "error"]


@dataclass(frozen=True)
class TaskGraphEdge:
    from_id: str
    to_id: str
    kind: Optional[EdgeKind] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.from_id, self.to_id)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"from": self.from_id, "to": self.to_id}
        if self.kind is not None:
            d["kind"] = self.kind
        return d


@dataclass(frozen=True)
class TaskGraphNode:
    id: str
    title: str
    description: str
    depends_on: list[str] = field(default_factory=list)

    agent_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "dependsOn": list(self.depends_on),
        }
        if self.agent_id is not None:
            d["agentId"] = self.agent_id
        return d


@dataclass(frozen=True)
class TaskGraphSpec:
    goal: str
    nodes: list[TaskGraphNode]
    edges: list[TaskGraphEdge] = field(default_factory=list)
    version: str = SPEC_VERSION

    final_node_id: Optional[str] = None
    template_hint: Optional[str] = None

    def node_ids(self) -> list[str]:
        return [n.id for n in self.nodes]

    def get_node(self, node_id: str) -> Optional[TaskGraphNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "version": self.version,
            "goal": self.goal,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }
        if self.final_node_id is not None:
            d["finalNodeId"] = self.final_node_id
        if self.template_hint is not None:
            d["templateHint"] = self.template_hint
        return d


@dataclass
class TaskGraphNodeRun:
    """Lifecycle of one node within an execution run (mutated in place)."""

    node_id: str
    agent_id: str = ""
    agent_name: str = ""
    model: str = ""
    status: NodeStatus = "pending"

    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    output: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "nodeId": self.node_id,
            "status": self.status,
            "agentId": self.agent_id,
            "agentName": self.agent_name,
            "model": self.model,
        }
        for key, value in (
            ("startedAt", self.started_at),
            ("finishedAt", self.finished_at),
            ("output", self.output),
            ("error", self.error),
        ):
            if value is not None:
                d[key] = value
        return d


@dataclass
class TaskGraphExecutionRun:
    run_id: str
    created_at: str
    nodes: list[TaskGraphNodeRun] = field(default_factory=list)
    finished_at: Optional[str] = None

    def get_node_run(self, node_id: str) -> Optional[TaskGraphNodeRun]:
        for r in self.nodes:
            if r.node_id == node_id:
                return r
        return None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "runId": self.run_id,
            "createdAt": self.created_at,
            "nodes": [r.to_dict() for r in self.nodes],
        }
        if self.finished_at is not None:
            d["finishedAt"] = self.finished_at
        return d
