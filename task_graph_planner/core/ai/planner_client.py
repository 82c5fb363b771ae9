from __future__ import annotations

import logging
import os
import re
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PLANNER_MODEL = "gpt-4.1-mini"


def _role_env_key(role: str) -> str:
    """Map a role name to a role-specific env var key.

    Examples:
      - planner -> OPENAI_MODEL_PLANNER
      - graph-fixer -> OPENAI_MODEL_GRAPH_FIXER
    """

    role_key = re.sub(r"[^A-Za-z0-9]+", "_", role).strip("_").upper()
    return f"OPENAI_MODEL_{role_key}"


def model_for_role(role: str, default_model: str | None = None) -> str:
    """Return the model to use for a given role.

    Resolution order:
      1) OPENAI_MODEL_<ROLE>
      2) OPENAI_MODEL
      3) default_model, then DEFAULT_PLANNER_MODEL
    """

    for key in (_role_env_key(role), "OPENAI_MODEL"):
        override = (os.getenv(key, "") or "").strip()
        if override:
            return override
    return default_model or DEFAULT_PLANNER_MODEL


class OpenAIPlannerClient:
    """Free-form chat completion for the task graph planner (OpenAI Responses API)."""

    def __init__(self, *, base_url: str | None = None, temperature: float = 0.2) -> None:
        self._base_url = base_url
        self._temperature = temperature

    def complete(self, *, system: str, user: str, model: str) -> str:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is not set")

        try:
            from openai import OpenAI  # type: ignore
        except Exception as e:
            raise RuntimeError(
                "openai package not installed; install with: pip install openai"
            ) from e

        client = OpenAI(base_url=self._base_url) if self._base_url else OpenAI()

        logger.info("Requesting task graph plan", extra={"model": model})
        resp = client.responses.create(
            model=model,
            temperature=self._temperature,
            input=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        )
        return _extract_output_text(resp)


def _extract_output_text(resp: Any) -> str:
    """Extract response text robustly across OpenAI SDK response shapes."""
    raw = getattr(resp, "output_text", None)
    if isinstance(raw, str) and raw.strip():
        return raw

    dump = None
    if hasattr(resp, "model_dump"):
        try:
            dump = resp.model_dump()
        except Exception:
            dump = None

    if isinstance(dump, dict):
        out = dump.get("output")
        if isinstance(out, list):
            texts: list[str] = []
            for item in out:
                if not isinstance(item, dict):
                    continue
                content = item.get("content")
                if not isinstance(content, list):
                    continue
                for c in content:
                    if isinstance(c, dict) and isinstance(c.get("text"), str) and c["text"].strip():
                        texts.append(c["text"])
            if texts:
                return "\n".join(texts)

    return str(resp)
