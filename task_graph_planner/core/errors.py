from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, TypeVar


@dataclass(frozen=True)
class TaskGraphError(Exception):
    """Base error envelope. Prefer returning/printing these rather than raising raw exceptions."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<spec>"
        return f"{loc}: {self.code}: {self.message}"


class TaskGraphLoadError(TaskGraphError):
    pass


class TaskGraphValidationError(TaskGraphError):
    pass


class PlannerError(TaskGraphError):
    pass


class SpecRejectedError(ValueError):
    """Raised when a spec fails validation; carries every violation found."""

    def __init__(self, errors: Iterable[TaskGraphValidationError]) -> None:
        self.errors: list[TaskGraphValidationError] = sort_errors(errors)
        super().__init__(
            f"task graph spec rejected ({len(self.errors)} error(s)): "
            + "; ".join(str(e) for e in self.errors[:5])
        )


class RunStateError(ValueError):
    pass


E = TypeVar("E", bound=TaskGraphError)


def sort_errors(errors: Iterable[E]) -> list[E]:
    return sorted(
        list(errors),
        key=lambda e: (
            e.file or "",
            e.path or "",
            e.code,
        ),
    )
