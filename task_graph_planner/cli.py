from __future__ import annotations

import json
import os
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from task_graph_planner.core.ai.plan_graph import DEFAULT_MAX_NODES, AgentSummary, plan_task_graph
from task_graph_planner.core.ai.planner_client import OpenAIPlannerClient, model_for_role
from task_graph_planner.core.errors import (
    PlannerError,
    SpecRejectedError,
    TaskGraphError,
    TaskGraphLoadError,
    TaskGraphValidationError,
)
from task_graph_planner.core.io.load_spec import dump_spec, load_spec
from task_graph_planner.core.lint.lint_spec import lint_task_graph_spec
from task_graph_planner.core.logging import configure_logging
from task_graph_planner.core.model import SPEC_VERSION, TaskGraphSpec
from task_graph_planner.core.normalize.normalize_spec import normalize_task_graph_spec
from task_graph_planner.core.presets.presets import PresetConfigError, TaskGraphPreset, load_and_merge
from task_graph_planner.core.schedule.topo_layers import plan_layers
from task_graph_planner.core.validate.validate_spec import summarize_spec, validate_task_graph_spec

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


@app.callback()
def _callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="DEBUG|INFO|WARNING|ERROR (default: $TASKGRAPH_LOG_LEVEL or WARNING)"
    ),
) -> None:
    """Task graph CLI: validate, lint, normalize and schedule multi-agent task graphs."""
    try:
        configure_logging(log_level)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level")


def _check_format(command: str, format: str) -> None:
    if format not in ("text", "json"):
        err = TaskGraphValidationError(
            code=f"E_{command.upper()}_UNKNOWN_FORMAT",
            message=f"unknown format: {format} (choose one of: text, json)",
            file=None,
            path="format",
        )
        _print_errors([err])
        raise typer.Exit(code=2)


def _to_item(e: TaskGraphError) -> dict:
    if isinstance(e, TaskGraphLoadError):
        source = "load"
    elif e.code.startswith("L_"):
        source = "lint"
    else:
        source = "validate"
    return {
        "code": e.code,
        "message": e.message,
        "file": e.file,
        "path": e.path,
        "severity": "error",
        "source": source,
    }


def _emit_json(payload: dict[str, Any], exit_code: int) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False))
    raise typer.Exit(code=exit_code)


def _load_or_exit(command: str, path: str, format: str) -> dict[str, Any]:
    try:
        return load_spec(path)
    except TaskGraphLoadError as e:
        if format == "json":
            _emit_json(
                {
                    "tool": "taskgraph",
                    "command": command,
                    "ok": False,
                    "error_count": 1,
                    "errors": [_to_item(e)],
                },
                1,
            )
        _print_errors([e])
        raise typer.Exit(code=1)


def _validate_or_exit(command: str, raw: dict[str, Any], format: str) -> TaskGraphSpec:
    spec, errors = validate_task_graph_spec(raw)
    if errors or spec is None:
        if format == "json":
            _emit_json(
                {
                    "tool": "taskgraph",
                    "command": command,
                    "ok": False,
                    "error_count": len(errors),
                    "errors": [_to_item(e) for e in errors],
                },
                2,
            )
        _print_errors(list(errors))
        raise typer.Exit(code=2)
    return spec


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a task graph file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate a task graph file against the v2.0 schema."""
    _check_format("validate", format)
    raw = _load_or_exit("validate", path, format)
    spec = _validate_or_exit("validate", raw, format)

    if format == "text":
        typer.echo(summarize_spec(spec))
        return

    _emit_json(
        {
            "tool": "taskgraph",
            "command": "validate",
            "version": spec.version,
            "ok": True,
            "error_count": 0,
            "errors": [],
            "summary": {
                "goal": spec.goal,
                "node_count": len(spec.nodes),
                "edge_count": len(spec.edges),
                "roots": [n.id for n in spec.nodes if not n.depends_on],
                "final_node_id": spec.final_node_id,
            },
        },
        0,
    )


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a task graph file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Lint a task graph file (structural rules beyond schema validation)."""
    _check_format("lint", format)
    raw = _load_or_exit("lint", path, format)

    _, validation_errors = validate_task_graph_spec(raw)
    errors: list[TaskGraphError] = [*lint_task_graph_spec(raw), *validation_errors]

    if format == "json":
        _emit_json(
            {
                "tool": "taskgraph",
                "command": "lint",
                "version": SPEC_VERSION,
                "ok": not errors,
                "error_count": len(errors),
                "errors": [_to_item(e) for e in errors],
            },
            2 if errors else 0,
        )

    if errors:
        _print_errors(errors)
        raise typer.Exit(code=2)
    typer.echo("OK: lint passed")


@app.command("normalize")
def normalize(
    path: str = typer.Argument(..., help="Path to a task graph file (.yaml/.yml/.json)"),
    out: str = typer.Option(..., "--out", help="Where to write the normalized spec (.json, or YAML otherwise)"),
) -> None:
    """Add control edges for every dependsOn relation and write the result."""
    raw = _load_or_exit("normalize", path, "text")
    spec = _validate_or_exit("normalize", raw, "text")

    normalized = normalize_task_graph_spec(spec)
    dump_spec(normalized, out)
    added = len(normalized.edges) - len(spec.edges)
    typer.echo(f"OK: wrote {out} (edges={len(normalized.edges)}, added={added})")


@app.command("layers")
def layers(
    path: str = typer.Argument(..., help="Path to a task graph file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Print the parallel execution layers of a task graph."""
    _check_format("layers", format)
    raw = _load_or_exit("layers", path, format)
    spec = _validate_or_exit("layers", raw, format)

    schedule = plan_layers(normalize_task_graph_spec(spec))

    if format == "json":
        _emit_json(
            {
                "tool": "taskgraph",
                "command": "layers",
                "ok": True,
                "layers": schedule.layers,
                "cyclic": schedule.cyclic,
                "fallback_layer": schedule.fallback_layer,
            },
            0,
        )

    table = Table(title=f"Layers: {spec.goal}")
    table.add_column("Layer")
    table.add_column("Nodes")
    table.add_column("Titles")
    for i, layer in enumerate(schedule.layers):
        titles = [spec.get_node(nid).title for nid in layer]  # type: ignore[union-attr]
        table.add_row(str(i + 1), ", ".join(layer), "; ".join(titles))
    console.print(table)

    if schedule.cyclic:
        typer.echo(
            "WARN: dependency cycle; last layer is a fallback without ordering guarantees: "
            + ", ".join(schedule.fallback_layer),
            err=True,
        )


@app.command("presets")
def presets(
    preset_file: Optional[str] = typer.Option(
        None,
        "--preset-file",
        help="Optional YAML file to add/override presets",
    ),
) -> None:
    """List available decomposition presets and their template hints."""
    presets_map = _load_presets_or_exit(preset_file)

    typer.echo("Presets:")
    for pid in sorted(presets_map.keys()):
        p = presets_map[pid]
        typer.echo(f"- {pid} ({p.name}): {p.template_hint}")


@app.command("plan")
def plan(
    goal: str = typer.Argument(..., help="Overall goal to decompose"),
    out: str = typer.Option(..., "--out", help="Where to write the planned spec (.json, or YAML otherwise)"),
    agents: list[str] = typer.Option(
        ..., "--agent", "-a", help="Allowed agent id (repeatable): -a writer -a coder"
    ),
    preset: Optional[str] = typer.Option(None, "--preset", help="Preset id supplying the template hint"),
    preset_file: Optional[str] = typer.Option(None, "--preset-file"),
    template_hint: Optional[str] = typer.Option(None, "--template-hint", help="Overrides --preset"),
    max_nodes: int = typer.Option(DEFAULT_MAX_NODES, "--max-nodes"),
    model: Optional[str] = typer.Option(None, "--model", help="Default: $OPENAI_MODEL_PLANNER / $OPENAI_MODEL"),
    base_url: Optional[str] = typer.Option(None, "--base-url"),
) -> None:
    """Ask an LLM to decompose GOAL into a normalized task graph."""
    if not os.getenv("OPENAI_API_KEY"):
        _print_errors(
            [
                PlannerError(
                    code="E_PLANNER_NO_API_KEY",
                    message="OPENAI_API_KEY is not set",
                    file=None,
                    path="OPENAI_API_KEY",
                )
            ]
        )
        raise typer.Exit(code=2)

    hint = template_hint
    if hint is None and preset is not None:
        presets_map = _load_presets_or_exit(preset_file)
        if preset not in presets_map:
            _print_errors(
                [
                    TaskGraphValidationError(
                        code="E_PLAN_UNKNOWN_PRESET",
                        message=f"unknown preset: {preset} (choose one of: {', '.join(sorted(presets_map.keys()))})",
                        file=None,
                        path="preset",
                    )
                ]
            )
            raise typer.Exit(code=2)
        hint = presets_map[preset].template_hint

    try:
        spec = plan_task_graph(
            goal=goal,
            llm=OpenAIPlannerClient(base_url=base_url),
            model=model or model_for_role("planner"),
            allowed_agents=[AgentSummary(id=a, name=a) for a in agents],
            template_hint=hint,
            max_nodes=max_nodes,
        )
    except PlannerError as e:
        _print_errors([e])
        raise typer.Exit(code=2)
    except SpecRejectedError as e:
        _print_errors(list(e.errors))
        raise typer.Exit(code=2)

    dump_spec(spec, out)
    typer.echo(f"OK: wrote {out} (nodes={len(spec.nodes)}, edges={len(spec.edges)})")


def _load_presets_or_exit(preset_file: Optional[str]) -> dict[str, TaskGraphPreset]:
    try:
        return load_and_merge(preset_file)
    except FileNotFoundError:
        _print_errors(
            [
                TaskGraphLoadError(
                    code="E_PRESET_FILE_NOT_FOUND",
                    message=f"preset file not found: {preset_file}",
                    file=None,
                    path="preset_file",
                )
            ]
        )
        raise typer.Exit(code=1)
    except PresetConfigError as e:
        _print_errors(
            [
                TaskGraphValidationError(
                    code="E_PRESET_FILE_INVALID",
                    message=str(e),
                    file=None,
                    path="preset_file",
                )
            ]
        )
        raise typer.Exit(code=2)


def _print_errors(errors: list[TaskGraphError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="taskgraph")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
