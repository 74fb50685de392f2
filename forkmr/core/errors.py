from typing import Optional

from forkmr.models.job import JobPhase


class MapReduceError(Exception):
    """
    Base class for every error the engine reports to a caller.

    Attributes:
        phase: Orchestrator phase in which the error happened.
        split_index: Failing split, when the error concerns one map worker.
    """

    def __init__(self, message: str, phase: Optional[JobPhase] = None,
                 split_index: Optional[int] = None):
        super().__init__(message)
        self.phase = phase
        self.split_index = split_index

    def __str__(self):
        message = super().__str__()
        if self.phase is not None:
            message = f"[{self.phase.value}] {message}"
        return message


class InvalidSpecError(MapReduceError, ValueError):
    """The job description was rejected before any worker was created."""

    def __init__(self, message: str, phase: JobPhase = JobPhase.VALIDATE):
        super().__init__(message, phase=phase)


class JobIOError(MapReduceError, OSError):
    """A file the engine needs could not be opened, created, read or written."""


class WorkerLaunchError(MapReduceError):
    """An execution unit could not be created."""


class WorkerFailureError(MapReduceError):
    """A user function reported failure or its unit exited abnormally."""

    def __init__(self, message: str, phase: Optional[JobPhase] = None,
                 split_index: Optional[int] = None, function_name: Optional[str] = None,
                 worker_id: Optional[int] = None, reason: Optional[str] = None,
                 exit_code: Optional[int] = None):
        super().__init__(message, phase=phase, split_index=split_index)
        self.function_name = function_name
        self.worker_id = worker_id
        self.reason = reason
        self.exit_code = exit_code

    @classmethod
    def from_outcome(cls, outcome, phase: JobPhase):
        return cls(
            f"{outcome.describe()} failed: {outcome.reason}",
            phase=phase,
            split_index=outcome.split_index,
            function_name=outcome.function_name,
            worker_id=outcome.worker_id,
            reason=outcome.reason,
            exit_code=outcome.exit_code,
        )


class ReduceFailureError(WorkerFailureError):
    """The reduce worker failed; the job has no result."""
