"""Background task engine.

A task is a fixed pipeline of named steps. Each step runs under a
RetryPolicy. The engine guarantees that every run ends with exactly one
``on_complete`` call carrying a Profile or a TaskFailure. Exceptions from
steps or from the task body are converted to a TaskFailure at the run
boundary and never escape the run's asyncio task.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol

from ..logging import get_logger
from .models import (
    StepRecord,
    StepStatus,
    TaskFailure,
    TaskOutcome,
    TaskRun,
)
from .policy import RetryPolicy, StepFailedError, run_with_retry

if TYPE_CHECKING:
    from ..logging import JSONLLogger
    from ..session import SessionManager

logger = logging.getLogger(__name__)


class TaskListener(Protocol):
    """Receives progress and terminal results from runs."""

    async def on_progress(self, session_key: str, event: dict[str, Any]) -> None: ...

    async def on_complete(self, session_key: str, outcome: TaskOutcome) -> None: ...


class _StepAborted(Exception):
    """Internal: a step exhausted its attempts."""

    def __init__(self, step: str, error: StepFailedError) -> None:
        super().__init__(str(error))
        self.step = step
        self.error = error


class Task(ABC):
    """Base interface for background task kinds."""

    @property
    @abstractmethod
    def kind(self) -> str:
        """Unique task kind name."""
        ...

    @abstractmethod
    async def run(self, ctx: TaskContext, params: dict[str, Any]) -> TaskOutcome:
        """Run the pipeline.

        Return a TaskFailure to stop early. Exceptions are converted by the
        engine, but returning is the expected way to fail.
        """
        ...

    def subject_of(self, params: dict[str, Any]) -> str:
        """Subject key a run of this task is about."""
        return str(params.get("subject", ""))


class TaskContext:
    """Per-run handle given to a task body."""

    def __init__(self, engine: TaskEngine, run: TaskRun) -> None:
        self._engine = engine
        self.run = run

    @property
    def session_key(self) -> str:
        return self.run.session_key

    async def step(
        self,
        name: str,
        fn: Callable[[], Awaitable[Any]],
        policy: RetryPolicy,
    ) -> Any:
        """Run a named step with retries and record its result."""
        if name in self.run.steps:
            raise ValueError(f"Step '{name}' already ran in run {self.run.run_id}")
        record = StepRecord(name=name, policy=policy)
        self.run.steps[name] = record

        def attempt_failed(attempt: int, error: BaseException) -> None:
            record.attempts = attempt
            self._engine.json_logger.log(
                "task_step",
                session_key=self.session_key,
                run_id=self.run.run_id,
                step=name,
                attempt=attempt,
                error=str(error) or type(error).__name__,
            )

        try:
            value, attempts = await run_with_retry(
                fn, policy, sleep=self._engine.sleep, on_attempt_failed=attempt_failed
            )
        except StepFailedError as e:
            record.attempts = e.attempts
            record.settle(StepStatus.FAILURE, e.cause)
            raise _StepAborted(name, e) from e.cause

        record.attempts = attempts
        record.settle(StepStatus.SUCCESS, value)
        return value

    async def report_progress(
        self,
        step: str,
        status: str,
        message: str,
        percent: float | None = None,
    ) -> None:
        """Best-effort progress event. Never raises."""
        event: dict[str, Any] = {
            "type": "progress",
            "step": step,
            "status": status,
            "message": message,
        }
        if percent is not None:
            event["percent"] = max(0.0, min(1.0, percent))
        await self._engine._emit_progress(self.run, event)

    async def merge_state(
        self, patch: dict[str, Any], only_if: dict[str, Any] | None = None
    ) -> bool:
        """Merge a patch into the session's derived facts."""
        return self._engine.sessions.merge_facts(self.session_key, patch, only_if=only_if)


class RunHandle:
    """Handle to a started run."""

    def __init__(self, run: TaskRun, task: asyncio.Task[TaskOutcome]) -> None:
        self.run = run
        self._task = task

    @property
    def run_id(self) -> str:
        return self.run.run_id

    @property
    def done(self) -> bool:
        return self.run.done

    async def wait(self) -> TaskOutcome:
        """Wait for the terminal outcome."""
        return await asyncio.shield(self._task)


class TaskEngine:
    """Starts and tracks background task runs."""

    def __init__(
        self,
        sessions: SessionManager,
        listener: TaskListener | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        json_logger: JSONLLogger | None = None,
    ) -> None:
        self.sessions = sessions
        self.listener = listener
        self.sleep = sleep
        self.json_logger = json_logger or get_logger()
        self._tasks: dict[str, Task] = {}
        self._runs: dict[str, RunHandle] = {}

    def register(self, task: Task) -> None:
        """Register a task kind."""
        if task.kind in self._tasks:
            raise ValueError(f"Task '{task.kind}' already registered")
        self._tasks[task.kind] = task

    def set_listener(self, listener: TaskListener) -> None:
        self.listener = listener

    def list_kinds(self) -> list[str]:
        return list(self._tasks.keys())

    def start(self, session_key: str, kind: str, params: dict[str, Any]) -> RunHandle:
        """Start a run in the background and return its handle."""
        task = self._tasks.get(kind)
        if task is None:
            raise ValueError(f"Unknown task kind: {kind}")

        run = TaskRun(
            run_id=f"{kind}-{uuid.uuid4().hex[:8]}",
            session_key=session_key,
            kind=kind,
            params=dict(params),
        )
        aio_task = asyncio.create_task(self._execute(task, run), name=run.run_id)
        handle = RunHandle(run, aio_task)
        self._runs[run.run_id] = handle
        # Finished runs are not kept.
        aio_task.add_done_callback(lambda _: self._runs.pop(run.run_id, None))

        self.json_logger.log(
            "task_start", session_key=session_key, run_id=run.run_id, kind=kind
        )
        return handle

    def get_run(self, run_id: str) -> RunHandle | None:
        """Handle of a run that has not finished yet.

        Finished runs are dropped once delivered. Keep the handle returned by
        ``start`` to read their outcome.
        """
        return self._runs.get(run_id)

    def active_runs(self, session_key: str, kind: str | None = None) -> list[RunHandle]:
        """Runs of a session that have not finished yet."""
        return [
            h
            for h in self._runs.values()
            if h.run.session_key == session_key
            and not h.done
            and (kind is None or h.run.kind == kind)
        ]

    async def wait_all(self) -> None:
        """Wait for every outstanding run."""
        # Deliveries may start new runs, so drain until nothing is left.
        while self._runs:
            await asyncio.gather(*(h.wait() for h in list(self._runs.values())))

    async def _execute(self, task: Task, run: TaskRun) -> TaskOutcome:
        ctx = TaskContext(self, run)
        subject = task.subject_of(run.params)

        try:
            outcome = await task.run(ctx, run.params)
        except _StepAborted as e:
            outcome = TaskFailure(subject_key=subject, reason=str(e.error.cause), step=e.step)
        except Exception as e:
            logger.exception(f"Run {run.run_id} crashed")
            outcome = TaskFailure(subject_key=subject, reason=f"Unexpected error: {e}")

        run.finish(outcome)
        self.json_logger.log(
            "task_complete",
            session_key=run.session_key,
            run_id=run.run_id,
            kind=run.kind,
            status=run.status.value,
            error=outcome.reason if isinstance(outcome, TaskFailure) else None,
        )
        await self._deliver(run, outcome)
        return outcome

    async def _emit_progress(self, run: TaskRun, event: dict[str, Any]) -> None:
        if self.listener is None:
            return
        try:
            await self.listener.on_progress(run.session_key, event)
        except Exception:
            logger.exception(f"Progress delivery failed for run {run.run_id}")

    async def _deliver(self, run: TaskRun, outcome: TaskOutcome) -> None:
        if self.listener is None:
            logger.warning(f"Run {run.run_id} finished with no listener attached")
            return
        try:
            await self.listener.on_complete(run.session_key, outcome)
        except Exception:
            logger.exception(f"Completion delivery failed for run {run.run_id}")
