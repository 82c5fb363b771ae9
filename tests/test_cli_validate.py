import json

from typer.testing import CliRunner

from task_graph_planner.cli import app

runner = CliRunner()


def test_cli_validate_success(examples):
    r = runner.invoke(app, ["validate", str(examples / "basic-graph.yaml")])
    assert r.exit_code == 0, r.output
    assert "OK: 4 nodes" in r.output
    assert "Roots: A" in r.output


def test_cli_validate_failure(examples):
    r = runner.invoke(app, ["validate", str(examples / "invalid-spec.yaml")])
    assert r.exit_code == 2
    assert "E_INVALID_LITERAL" in r.output
    assert "E_DUPLICATE_ID" in r.output


def test_cli_validate_missing_file(examples):
    r = runner.invoke(app, ["validate", str(examples / "nope.yaml")])
    assert r.exit_code == 1
    assert "E_FILE_NOT_FOUND" in r.output


def test_cli_validate_json_success(examples):
    r = runner.invoke(app, ["validate", str(examples / "basic-graph.yaml"), "--format", "json"])
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    assert payload["command"] == "validate"
    assert payload["ok"] is True
    assert payload["errors"] == []
    assert payload["summary"]["node_count"] == 4
    assert payload["summary"]["final_node_id"] == "D"


def test_cli_validate_json_failure(examples):
    r = runner.invoke(app, ["validate", str(examples / "invalid-spec.yaml"), "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["ok"] is False
    assert payload["error_count"] == 6
    assert {e["source"] for e in payload["errors"]} == {"validate"}


def test_cli_validate_unknown_format(examples):
    r = runner.invoke(app, ["validate", str(examples / "basic-graph.yaml"), "--format", "xml"])
    assert r.exit_code == 2
    assert "E_VALIDATE_UNKNOWN_FORMAT" in r.output
