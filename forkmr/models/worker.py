from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TaskType(str, Enum):
    """
    Kind of user function a worker unit runs.

    - MAP: processes one split into one intermediate file
    - REDUCE: merges all intermediate files into the result file
    """
    MAP = "map"
    REDUCE = "reduce"


class TaskStatus(str, Enum):
    """Final state of a worker unit. There is no retry, so no intermediate states are kept."""
    COMPLETED = "completed"
    FAILED = "failed"


class WorkerOutcome(BaseModel):
    """
    Exit status of one worker unit.

    Consumed immediately by the stage that owns the worker; never persisted.
    """
    worker_id: int                              # PID (process backend) or native thread id
    task_type: TaskType
    function_name: str
    split_index: Optional[int] = None           # Map workers only
    status: TaskStatus
    reason: Optional[str] = None                # Failure description
    exit_code: Optional[int] = None             # Process exit code when available
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def describe(self) -> str:
        """Human-readable label used in logs and error messages."""
        label = f"{self.task_type.value} worker {self.worker_id} ({self.function_name}"
        if self.split_index is not None:
            label += f", split {self.split_index}"
        return label + ")"
