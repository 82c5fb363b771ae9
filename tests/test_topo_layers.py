from conftest import make_node, make_spec
from task_graph_planner.core.io.load_spec import load_spec
from task_graph_planner.core.normalize.normalize_spec import normalize_task_graph_spec
from task_graph_planner.core.schedule.topo_layers import (
    ordering_violations,
    plan_layers,
    topo_layers,
)
from task_graph_planner.core.validate.validate_spec import parse_task_graph_spec


def _spec(*nodes):
    return normalize_task_graph_spec(make_spec(*nodes))


def test_diamond_layers():
    spec = _spec(
        make_node("A", depends_on=[]),
        make_node("B", depends_on=["A"]),
        make_node("C", depends_on=["A"]),
        make_node("D", depends_on=["B", "C"]),
    )
    layers = topo_layers(spec)
    assert layers[0] == ["A"]
    assert sorted(layers[1]) == ["B", "C"]
    assert layers[2] == ["D"]


def test_layers_follow_declaration_order():
    spec = _spec(make_node("Z"), make_node("M"), make_node("A"))
    assert topo_layers(spec) == [["Z", "M", "A"]]


def test_chain_gives_one_node_per_layer():
    spec = _spec(make_node("C", depends_on=["B"]), make_node("B", depends_on=["A"]), make_node("A"))
    assert topo_layers(spec) == [["A"], ["B"], ["C"]]


def test_layering_covers_every_node_once(examples):
    spec = parse_task_graph_spec(load_spec(str(examples / "basic-graph.yaml")))
    flat = [nid for layer in topo_layers(spec) for nid in layer]
    assert sorted(flat) == sorted(spec.node_ids())
    assert len(flat) == len(set(flat))


def test_acyclic_schedule_respects_dependencies(examples):
    spec = parse_task_graph_spec(load_spec(str(examples / "basic-graph.yaml")))
    schedule = plan_layers(spec)
    assert not schedule.cyclic
    assert schedule.fallback_layer == []
    assert ordering_violations(spec, schedule.layers) == []


def test_two_node_cycle_terminates_in_fallback_layer():
    spec = _spec(make_node("A", depends_on=["B"]), make_node("B", depends_on=["A"]))
    schedule = plan_layers(spec)
    assert schedule.layers == [["A", "B"]]
    assert schedule.cyclic
    assert schedule.fallback_layer == ["A", "B"]


def test_cycle_after_ready_prefix(examples):
    spec = parse_task_graph_spec(load_spec(str(examples / "cyclic-graph.yaml")))
    schedule = plan_layers(spec)
    assert schedule.layers == [["start"], ["A", "B"]]
    assert schedule.fallback_layer == ["A", "B"]
    assert set(ordering_violations(spec, schedule.layers)) == {("A", "B"), ("B", "A")}


def test_self_dependency_falls_back():
    spec = _spec(make_node("A"), make_node("B", depends_on=["B"]))
    schedule = plan_layers(spec)
    assert schedule.layers == [["A"], ["B"]]
    assert schedule.fallback_layer == ["B"]


def test_dangling_dependency_is_ignored(examples):
    spec = parse_task_graph_spec(load_spec(str(examples / "dangling-dep.json")))
    schedule = plan_layers(spec)
    assert schedule.layers == [["A"], ["B"]]
    assert not schedule.cyclic


def test_only_dangling_dependency_lands_in_first_layer():
    spec = _spec(make_node("A"), make_node("B", depends_on=["Z"]))
    assert topo_layers(spec) == [["A", "B"]]
