# Standard library imports for type hints
from typing import List, Optional, TextIO

# Internal imports for worker execution, models and logging
from forkmr.core.errors import JobIOError, ReduceFailureError, WorkerLaunchError
from forkmr.models.job import JobPhase, JobSpec
from forkmr.models.worker import TaskType
from forkmr.services.execution_sandbox import ExecutionSandbox
from forkmr.utils.config import Settings, get_settings
from forkmr.utils.logger import get_logger
from forkmr.utils.metrics import MetricsCollector


def close_all(handles: List[TextIO]):
    for handle in handles:
        handle.close()


class ReduceStage:
    """
    Drives the single reduce worker over every intermediate file.

    The intermediate files are opened read-only in split order and passed
    to the worker as an ordered list together with a truncated result file.
    A reduce failure is fatal to the job.
    """

    def __init__(self, sandbox: ExecutionSandbox, settings: Optional[Settings] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.sandbox = sandbox
        self.settings = settings or get_settings()
        self.metrics = metrics
        self.logger = get_logger(__name__)

    def open_intermediates(self, split_count: int) -> List[TextIO]:
        """
        Open every intermediate file for reading, in split order.

        Raises:
            JobIOError: If any file cannot be opened; files already opened are closed.
        """
        handles: List[TextIO] = []
        for index in range(split_count):
            path = self.settings.intermediate_path(index)
            try:
                handles.append(open(path, "r", encoding="utf-8", newline=""))
            except OSError as e:
                close_all(handles)
                raise JobIOError(f"Failed to open intermediate file {path}: {e}",
                                 phase=JobPhase.OPEN_INTERMEDIATES, split_index=index) from e
        return handles

    async def run(self, spec: JobSpec, inputs: List[TextIO]) -> int:
        """
        Run the user reduce function over ``inputs`` and wait for it.

        Args:
            spec: Job description (reduce function).
            inputs: Open intermediate files in split order. They are closed
                by the time this method returns.

        Returns:
            int: Identifier of the reduce worker.

        Raises:
            JobIOError: If the result file cannot be created.
            WorkerLaunchError: If the reduce unit cannot be created.
            ReduceFailureError: If the reduce function or its unit failed.
        """
        result_path = self.settings.result_path()
        try:
            try:
                output = open(result_path, "w", encoding="utf-8", newline="")
            except OSError as e:
                raise JobIOError(f"Failed to create result file {result_path}: {e}",
                                 phase=JobPhase.REDUCE) from e

            try:
                unit = self.sandbox.launch(
                    TaskType.REDUCE,
                    spec.reduce_fn,
                    (list(inputs), output),
                    closeables=[*inputs, output],
                )
            except WorkerLaunchError as e:
                output.close()
                e.phase = JobPhase.REDUCE
                raise

            if self.metrics:
                self.metrics.worker_started()
            if unit.isolated:
                # The worker holds its own copies; ours are no longer needed.
                close_all(inputs)
                output.close()

            self.logger.info(f"Launched reduce worker {unit.worker_id} over {len(inputs)} inputs")
            outcome = await unit.wait()
        finally:
            close_all(inputs)

        if self.metrics:
            self.metrics.worker_finished(TaskType.REDUCE.value, outcome.success)
        if not outcome.success:
            self.logger.error(f"{outcome.describe()} failed: {outcome.reason}")
            raise ReduceFailureError.from_outcome(outcome, JobPhase.REDUCE)

        self.logger.debug(f"{outcome.describe()} completed in {outcome.elapsed_seconds:.4f}s")
        return outcome.worker_id
