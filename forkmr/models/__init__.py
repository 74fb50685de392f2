from forkmr.models.job import JobPhase, JobResult, JobSpec
from forkmr.models.split import Split
from forkmr.models.worker import TaskStatus, TaskType, WorkerOutcome

__all__ = [
    "JobPhase",
    "JobResult",
    "JobSpec",
    "Split",
    "TaskStatus",
    "TaskType",
    "WorkerOutcome",
]
