"""Background task engine and task kinds."""

from .engine import RunHandle, Task, TaskContext, TaskEngine, TaskListener
from .models import (
    Profile,
    RunStatus,
    StepRecord,
    StepResult,
    StepStatus,
    TaskFailure,
    TaskOutcome,
    TaskRun,
)
from .policy import RetryPolicy, StepFailedError, StepTimeoutError, run_with_retry
from .profile import PROFILE_ANALYSIS, ProfileAnalysisTask

__all__ = [
    "PROFILE_ANALYSIS",
    "Profile",
    "ProfileAnalysisTask",
    "RetryPolicy",
    "RunHandle",
    "RunStatus",
    "StepFailedError",
    "StepRecord",
    "StepResult",
    "StepStatus",
    "StepTimeoutError",
    "Task",
    "TaskContext",
    "TaskEngine",
    "TaskFailure",
    "TaskListener",
    "TaskOutcome",
    "TaskRun",
    "run_with_retry",
]
