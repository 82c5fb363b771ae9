from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


@dataclass(frozen=True)
class TaskGraphPreset:
    id: str
    name: str
    template_hint: str


DEFAULT_PRESETS: dict[str, TaskGraphPreset] = {
    "general": TaskGraphPreset(
        id="general",
        name="General decomposition",
        template_hint=(
            "Split the goal into clear subtasks: clarify requirements -> gather information "
            "-> design the approach -> produce the output -> verify and deliver."
        ),
    ),
    "coding": TaskGraphPreset(
        id="coding",
        name="Coding implementation",
        template_hint=(
            "Split for engineering delivery: requirements/boundaries -> scan the current state "
            "-> interfaces/data structures -> implementation -> tests/regression "
            "-> risks and rollout steps."
        ),
    ),
    "research": TaskGraphPreset(
        id="research",
        name="Research analysis",
        template_hint=(
            "Favour parallel research: extract key points from several sources -> compare "
            "-> conclusions and recommendations -> citations and risks."
        ),
    ),
}


class PresetConfigError(ValueError):
    pass


def load_preset_file(path: str | Path) -> dict[str, TaskGraphPreset]:
    """Load presets from a YAML file.

    Format:
      <id>:
        name: "Display name"        # optional, defaults to the id
        template_hint: "..."

    Returns a mapping of preset id -> preset.
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise PresetConfigError("preset file must be a mapping of id -> {name, template_hint}")

    out: dict[str, TaskGraphPreset] = {}
    for k, v in raw.items():
        if not isinstance(k, str) or not k.strip():
            raise PresetConfigError("preset ids must be non-empty strings")
        if not isinstance(v, dict):
            raise PresetConfigError(f"preset '{k}' must be a mapping")
        hint = v.get("template_hint")
        if not isinstance(hint, str) or not hint.strip():
            raise PresetConfigError(f"preset '{k}' needs a non-empty template_hint")
        name = v.get("name", k)
        if not isinstance(name, str) or not name.strip():
            raise PresetConfigError(f"preset '{k}' name must be a non-empty string")
        pid = k.strip()
        out[pid] = TaskGraphPreset(id=pid, name=name.strip(), template_hint=hint.strip())
    return out


def merged_presets(overrides: dict[str, TaskGraphPreset] | None = None) -> dict[str, TaskGraphPreset]:
    """Return DEFAULT_PRESETS merged with optional overrides.

    Overrides replace presets of the same id, and may add new ones.
    """
    merged = dict(DEFAULT_PRESETS)
    if overrides:
        merged.update(overrides)
    return merged


def load_and_merge(preset_file: str | None) -> dict[str, TaskGraphPreset]:
    if not preset_file:
        return merged_presets()
    overrides = load_preset_file(preset_file)
    return merged_presets(overrides)


def template_hint_for(preset_id: str, presets: dict[str, TaskGraphPreset] | None = None) -> str:
    catalog = presets if presets is not None else DEFAULT_PRESETS
    if preset_id not in catalog:
        raise KeyError(f"unknown preset: {preset_id} (choose one of: {', '.join(sorted(catalog))})")
    return catalog[preset_id].template_hint
