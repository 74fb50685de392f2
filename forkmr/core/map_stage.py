# Standard library imports for file I/O and type hints
import os
from typing import BinaryIO, Callable, List, Optional

# Internal imports for worker execution, models and logging
from forkmr.core.errors import WorkerFailureError, WorkerLaunchError
from forkmr.models.job import JobPhase, JobSpec
from forkmr.models.split import Split
from forkmr.models.worker import TaskType, WorkerOutcome
from forkmr.services.execution_sandbox import ExecutionSandbox, WorkerUnit, function_name
from forkmr.utils.config import Settings, get_settings
from forkmr.utils.logger import get_logger
from forkmr.utils.metrics import MetricsCollector


def read_exactly(source: BinaryIO, length: int) -> bytes:
    """Read ``length`` bytes, continuing over short reads until satisfied or end of file."""
    chunks = []
    remaining = length
    while remaining > 0:
        chunk = source.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def run_map_task(input_path: str, split: Split, map_fn: Callable, output_path: str):
    """
    Body of one map worker.

    Opens an independent cursor on the input at the split's offset, reads
    the split's bytes, and runs the user map function against a freshly
    truncated intermediate file. The output file is closed before returning.
    """
    with open(input_path, "rb") as source:
        source.seek(split.offset)
        data = read_exactly(source, split.length)

    with open(output_path, "w", encoding="utf-8", newline="") as output:
        return map_fn(split.model_copy(update={"data": data}), output)


class MapStage:
    """
    Fan-out/fan-in driver for the map phase.

    All map workers are launched before any is awaited, so the per-split
    work overlaps. The stage then joins every worker in split order and
    reports the first failure only after every launched worker has exited.
    """

    def __init__(self, sandbox: ExecutionSandbox, settings: Optional[Settings] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.sandbox = sandbox
        self.settings = settings or get_settings()
        self.metrics = metrics
        self.logger = get_logger(__name__)

    async def run(self, spec: JobSpec, splits: List[Split]) -> List[int]:
        """
        Run one map worker per split and wait for all of them.

        Args:
            spec: Job description (input path and map function).
            splits: Splits in split order.

        Returns:
            List[int]: Worker identifiers in split order.

        Raises:
            WorkerLaunchError: If a unit could not be created.
            WorkerFailureError: If any map worker failed (first in split order).
        """
        units: List[WorkerUnit] = []
        launch_error: Optional[WorkerLaunchError] = None
        name = function_name(spec.map_fn)

        for split in splits:
            output_path = self.settings.intermediate_path(split.index)
            try:
                unit = self.sandbox.launch(
                    TaskType.MAP,
                    run_map_task,
                    (os.fspath(spec.input_path), split, spec.map_fn, output_path),
                    split_index=split.index,
                    name=name,
                )
            except WorkerLaunchError as e:
                e.phase = JobPhase.MAP
                launch_error = e
                self.logger.error(f"Could not launch map worker for split {split.index}: {e}")
                break
            units.append(unit)
            if self.metrics:
                self.metrics.worker_started()

        self.logger.info(f"Launched {len(units)} map workers")

        outcomes: List[WorkerOutcome] = []
        for unit in units:
            outcome = await unit.wait()
            outcomes.append(outcome)
            if self.metrics:
                self.metrics.worker_finished(TaskType.MAP.value, outcome.success)
            if outcome.success:
                self.logger.debug(f"{outcome.describe()} completed in {outcome.elapsed_seconds:.4f}s")
            else:
                self.logger.error(f"{outcome.describe()} failed: {outcome.reason}")

        if launch_error is not None:
            raise launch_error

        for outcome in outcomes:
            if not outcome.success:
                raise WorkerFailureError.from_outcome(outcome, JobPhase.MAP)

        return [outcome.worker_id for outcome in outcomes]
