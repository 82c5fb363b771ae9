from pathlib import Path

import pytest


EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


@pytest.fixture
def examples() -> Path:
    return EXAMPLES_DIR


def make_node(node_id: str, depends_on=None, **extra) -> dict:
    node = {"id": node_id, "title": f"Title {node_id}", "description": f"Do {node_id}"}
    if depends_on is not None:
        node["dependsOn"] = depends_on
    node.update(extra)
    return node


def make_spec(*nodes: dict, **extra) -> dict:
    spec = {"version": "2.0", "goal": "Ship the thing", "nodes": list(nodes)}
    spec.update(extra)
    return spec
