from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from task_graph_planner.core.errors import TaskGraphLoadError
from task_graph_planner.core.model import TaskGraphSpec


SPEC_KEYS: tuple[str, ...] = ("version", "goal", "nodes", "edges", "finalNodeId", "templateHint")


def load_spec(path: str) -> dict[str, Any]:
    """Load a YAML/JSON task graph file.

    Returns a dict with the known spec keys that are present in the file.
    Does not coerce types; validator owns shape checking.
    """

    p = Path(path)
    if not p.exists():
        raise TaskGraphLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except Exception as e:  # pragma: no cover
        raise TaskGraphLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw_text)
        elif suffix == ".json":
            data = json.loads(raw_text)
        else:
            raise TaskGraphLoadError(
                code="E_UNSUPPORTED_FORMAT",
                message="supported formats are .yaml/.yml and .json",
                file=str(p),
            )
    except TaskGraphLoadError:
        raise
    except Exception as e:
        code = "E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE"
        raise TaskGraphLoadError(code=code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise TaskGraphLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=str(p),
        )

    normalized: dict[str, Any] = {k: data[k] for k in SPEC_KEYS if k in data}
    normalized["__file__"] = str(p)
    return normalized


def dump_spec_json(spec: TaskGraphSpec, path: str) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(spec.to_dict(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def dump_spec_yaml(spec: TaskGraphSpec, path: str) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(
        yaml.safe_dump(spec.to_dict(), sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )


def dump_spec(spec: TaskGraphSpec, path: str) -> None:
    """Write by suffix: .json as JSON, anything else as YAML."""
    if Path(path).suffix.lower() == ".json":
        dump_spec_json(spec, path)
    else:
        dump_spec_yaml(spec, path)
