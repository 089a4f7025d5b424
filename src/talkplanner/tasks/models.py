"""Data models for background task runs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from .policy import RetryPolicy


@dataclass(frozen=True)
class Profile:
    """Interest profile derived from a subject's recent posts."""

    subject_key: str
    topics: list[str]
    summary: str
    items_analyzed: int
    best_effort: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "subjectKey": self.subject_key,
            "topics": list(self.topics),
            "summary": self.summary,
            "itemsAnalyzed": self.items_analyzed,
            "bestEffort": self.best_effort,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Profile:
        return cls(
            subject_key=data["subjectKey"],
            topics=list(data.get("topics", [])),
            summary=data.get("summary", ""),
            items_analyzed=int(data.get("itemsAnalyzed", 0)),
            best_effort=bool(data.get("bestEffort", False)),
        )


@dataclass(frozen=True)
class TaskFailure:
    """Typed terminal failure of a run. Delivered as a value, never raised."""

    subject_key: str
    reason: str
    step: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"subjectKey": self.subject_key, "reason": self.reason, "step": self.step}


TaskOutcome = Union[Profile, TaskFailure]


class StepStatus(Enum):
    NOT_RUN = "not_run"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class StepResult:
    status: StepStatus = StepStatus.NOT_RUN
    value: Any = None


@dataclass
class StepRecord:
    """Bookkeeping for one step of a run."""

    name: str
    policy: RetryPolicy
    attempts: int = 0
    result: StepResult = field(default_factory=StepResult)

    def settle(self, status: StepStatus, value: Any) -> None:
        """Write the step result. A result can only be written once."""
        if self.result.status is not StepStatus.NOT_RUN:
            raise RuntimeError(f"Step '{self.name}' already settled")
        self.result = StepResult(status=status, value=value)


class RunStatus(Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class TaskRun:
    """One execution of a background task for a session."""

    run_id: str
    session_key: str
    kind: str
    params: dict[str, Any]
    steps: dict[str, StepRecord] = field(default_factory=dict)
    status: RunStatus = RunStatus.RUNNING
    outcome: TaskOutcome | None = None
    started_at: float = field(default_factory=time.time)
    finished_at: float | None = None

    @property
    def done(self) -> bool:
        return self.status is not RunStatus.RUNNING

    def finish(self, outcome: TaskOutcome) -> None:
        """Record the terminal outcome. Written at most once."""
        if self.done:
            raise RuntimeError(f"Run '{self.run_id}' already finished")
        self.outcome = outcome
        self.status = RunStatus.FAILED if isinstance(outcome, TaskFailure) else RunStatus.SUCCEEDED
        self.finished_at = time.time()
