# Standard library imports for timing, file system access and async execution
import asyncio
import os
import time
from typing import Any, List, Mapping, Optional, Union

# Third-party imports for spec validation
from pydantic import ValidationError

# Internal imports for the pipeline stages, models and logging
from forkmr.core.data_splitter import DataSplitter, empty_splits
from forkmr.core.errors import InvalidSpecError, JobIOError, MapReduceError
from forkmr.core.map_stage import MapStage
from forkmr.core.reduce_stage import ReduceStage
from forkmr.models.job import JobPhase, JobResult, JobSpec
from forkmr.models.split import Split
from forkmr.services.execution_sandbox import ExecutionSandbox
from forkmr.utils.config import Settings, get_settings
from forkmr.utils.logger import get_logger, setup_logger
from forkmr.utils.metrics import MetricsCollector


class JobManager:
    """
    Orchestrator for a single-machine MapReduce job.

    The job moves through a linear state machine:
    VALIDATE -> SPLIT -> MAP -> OPEN_INTERMEDIATES -> REDUCE -> FINALIZE.
    Each stage boundary is a barrier: reduce starts only after every map
    worker has reported success. Any failure ends the job in FAILED and the
    originating error is raised to the caller; nothing is retried and files
    already written are left in place.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.settings = settings or get_settings()
        setup_logger(self.settings.log_level)
        self.metrics = metrics or MetricsCollector()
        self.logger = get_logger(__name__)
        self.sandbox = ExecutionSandbox(self.settings)
        self.splitter = DataSplitter(self.settings)
        self.map_stage = MapStage(self.sandbox, self.settings, self.metrics)
        self.reduce_stage = ReduceStage(self.sandbox, self.settings, self.metrics)
        self.phase: Optional[JobPhase] = None

    async def run_job(self, spec: Union[JobSpec, Mapping[str, Any]]) -> JobResult:
        """
        Execute a job from validation to a populated result.

        Args:
            spec: JobSpec or a mapping with the same fields.

        Returns:
            JobResult: Worker identifiers, result path and elapsed time.

        Raises:
            MapReduceError: The error of the stage that failed.
        """
        started = None
        try:
            self._enter(JobPhase.VALIDATE)
            spec, total_size = self._validate(spec)

            started = time.perf_counter_ns()
            self._enter(JobPhase.SPLIT)
            splits = self._split(spec, total_size)

            self._enter(JobPhase.MAP)
            map_worker_ids = await self.map_stage.run(spec, splits)

            self._enter(JobPhase.OPEN_INTERMEDIATES)
            inputs = self.reduce_stage.open_intermediates(len(splits))

            self._enter(JobPhase.REDUCE)
            reduce_worker_id = await self.reduce_stage.run(spec, inputs)

            self._enter(JobPhase.FINALIZE)
            intermediate_paths = [self.settings.intermediate_path(s.index) for s in splits]
            if self.settings.cleanup_intermediates:
                self._remove_intermediates(intermediate_paths)
            elapsed_micros = (time.perf_counter_ns() - started) // 1000
            result = JobResult(
                map_worker_ids=map_worker_ids,
                reduce_worker_id=reduce_worker_id,
                output_path=self.settings.result_path(),
                elapsed_micros=elapsed_micros,
                intermediate_paths=intermediate_paths,
            )
        except MapReduceError as e:
            self._fail(e, started)
            raise
        except OSError as e:
            error = JobIOError(str(e), phase=self.phase)
            self._fail(error, started)
            raise error from e

        self._enter(JobPhase.COMPLETED)
        self.metrics.job_finished(True, elapsed_micros / 1_000_000)
        self.logger.info(
            f"Job completed: {len(map_worker_ids)} map workers, result at "
            f"{result.output_path} in {elapsed_micros}us"
        )
        return result

    def _enter(self, phase: JobPhase):
        self.phase = phase
        self.logger.debug(f"Entering phase {phase.value}")

    def _fail(self, error: MapReduceError, started: Optional[int]):
        failed_in = error.phase or self.phase
        if error.phase is None:
            error.phase = failed_in
        self.phase = JobPhase.FAILED
        duration = None if started is None else (time.perf_counter_ns() - started) / 1e9
        self.metrics.job_finished(False, duration)
        self.logger.error(f"Job failed in phase {failed_in.value}: {error}")

    def _validate(self, spec: Union[JobSpec, Mapping[str, Any], None]):
        """
        Reject malformed specs before any resource is allocated.

        Returns:
            Tuple[JobSpec, int]: The spec and the input size in bytes.
        """
        if spec is None:
            raise InvalidSpecError("Job spec is missing")
        if not isinstance(spec, JobSpec):
            if not isinstance(spec, Mapping):
                raise InvalidSpecError(f"Job spec must be a JobSpec or mapping, got {type(spec).__name__}")
            try:
                spec = JobSpec.model_validate(dict(spec))
            except ValidationError as e:
                raise InvalidSpecError(f"Malformed job spec: {e}") from e

        if spec.split_count <= 0:
            raise InvalidSpecError(f"Split count must be positive, got {spec.split_count}")
        if not callable(spec.map_fn) or not callable(spec.reduce_fn):
            raise InvalidSpecError("Map and reduce functions must be callable")

        try:
            with open(spec.input_path, "rb") as source:
                total_size = os.fstat(source.fileno()).st_size
        except OSError as e:
            raise InvalidSpecError(f"Input file {spec.input_path} is not readable: {e}") from e

        if total_size <= 0:
            raise InvalidSpecError(f"Input file {spec.input_path} is empty")
        if spec.split_count > total_size:
            raise InvalidSpecError(
                f"Split count {spec.split_count} exceeds input size of {total_size} bytes"
            )
        return spec, total_size

    def _split(self, spec: JobSpec, total_size: int) -> List[Split]:
        try:
            with open(spec.input_path, "rb") as source:
                splits = self.splitter.split(source, total_size, spec.split_count, spec.user_context)
        except OSError as e:
            raise JobIOError(f"Failed to read input file {spec.input_path}: {e}",
                             phase=JobPhase.SPLIT) from e

        empty = empty_splits(splits)
        if empty:
            raise InvalidSpecError(
                f"Split count {spec.split_count} leaves splits {empty} empty; "
                f"the input has too few line or sentence boundaries",
                phase=JobPhase.SPLIT,
            )
        self.logger.info(f"Input of {total_size} bytes partitioned into {len(splits)} splits")
        return splits

    def _remove_intermediates(self, paths: List[str]):
        for path in paths:
            try:
                os.remove(path)
            except FileNotFoundError:
                self.logger.warning(f"Intermediate file {path} already removed")


async def run_async(spec: Union[JobSpec, Mapping[str, Any]],
                    settings: Optional[Settings] = None,
                    metrics: Optional[MetricsCollector] = None) -> JobResult:
    """Run one job on the current event loop."""
    return await JobManager(settings, metrics).run_job(spec)


def run(spec: Union[JobSpec, Mapping[str, Any]], settings: Optional[Settings] = None,
        metrics: Optional[MetricsCollector] = None) -> JobResult:
    """
    Run one job to completion, blocking the caller.

    Must not be called from inside a running event loop; use ``run_async`` there.
    """
    return asyncio.run(run_async(spec, settings, metrics))
