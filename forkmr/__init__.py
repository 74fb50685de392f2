"""
forkmr: a single-machine MapReduce engine.

Partitions an input file on line boundaries, runs one isolated map worker
per split, and merges the intermediate files through one reduce worker.
"""

from forkmr.core.errors import (
    InvalidSpecError,
    JobIOError,
    MapReduceError,
    ReduceFailureError,
    WorkerFailureError,
    WorkerLaunchError,
)
from forkmr.core.job_manager import JobManager, run, run_async
from forkmr.models import JobPhase, JobResult, JobSpec, Split, WorkerOutcome
from forkmr.utils.config import Settings, get_settings

__version__ = "1.0.0"

__all__ = [
    "InvalidSpecError",
    "JobIOError",
    "JobManager",
    "JobPhase",
    "JobResult",
    "JobSpec",
    "MapReduceError",
    "ReduceFailureError",
    "Settings",
    "Split",
    "WorkerFailureError",
    "WorkerLaunchError",
    "WorkerOutcome",
    "get_settings",
    "run",
    "run_async",
]
