# Standard library imports for isolated execution and supervision
import asyncio
import multiprocessing
import sys
import threading
import time
import traceback
from typing import Any, Callable, Dict, List, Optional, Sequence

# Internal imports for configuration, logging and outcome models
from forkmr.core.errors import WorkerLaunchError
from forkmr.models.worker import TaskStatus, TaskType, WorkerOutcome
from forkmr.utils.config import Settings, get_settings
from forkmr.utils.logger import get_logger

# Longest failure reason a unit reports back.
MAX_REASON_LENGTH = 4096


def function_name(func: Callable) -> str:
    return getattr(func, "__qualname__", None) or getattr(func, "__name__", None) or repr(func)


def _truncate(reason: str) -> str:
    if len(reason) <= MAX_REASON_LENGTH:
        return reason
    return reason[:MAX_REASON_LENGTH] + f"... [{len(reason) - MAX_REASON_LENGTH} more characters]"


def _execute(func: Callable, args: Sequence[Any], closeables: Sequence[Any],
             report: Callable[[Dict[str, Any]], None]) -> bool:
    """
    Run one user function and report its outcome.

    A function fails by raising or by returning ``False``. Handles listed in
    ``closeables`` are closed afterwards so buffered output reaches the file
    before the unit exits.

    Returns:
        bool: True when the function succeeded.
    """
    try:
        try:
            returned = func(*args)
        finally:
            for handle in closeables:
                handle.close()
    except Exception as e:
        get_logger(__name__).debug(traceback.format_exc())
        report({"error": _truncate(f"{type(e).__name__}: {e}")})
        return False

    if returned is False:
        report({"error": "function returned failure"})
        return False
    report({"ok": True})
    return True


def _process_main(func, args, closeables, conn):
    """Entry point of a forked worker process."""
    try:
        succeeded = _execute(func, args, closeables, conn.send)
    finally:
        conn.close()
    if not succeeded:
        sys.exit(1)


class WorkerUnit:
    """
    Handle on one running worker unit.

    Created by ``ExecutionSandbox.launch``; ``wait`` yields the unit's
    WorkerOutcome once it has finished.
    Subclasses provide ``isolated``, ``is_alive``, ``_abandon`` and ``_collect``.
    """

    def __init__(self, task_type: TaskType, name: str, split_index: Optional[int],
                 settings: Settings):
        self.task_type = task_type
        self.function_name = name
        self.split_index = split_index
        self.settings = settings
        self.started_at = time.monotonic()
        self.worker_id = 0

    @property
    def isolated(self) -> bool:
        """True when the unit holds its own copies of any handles it was given."""
        raise NotImplementedError

    def is_alive(self) -> bool:
        raise NotImplementedError

    def _abandon(self) -> Optional[int]:
        """Stop waiting on a unit that exceeded its timeout; returns an exit code if known."""
        raise NotImplementedError

    def _collect(self) -> WorkerOutcome:
        raise NotImplementedError

    def _drain(self):
        """Pick up any outcome the unit has reported while it is still running."""

    async def wait(self) -> WorkerOutcome:
        """
        Block cooperatively until the unit finishes or times out.

        Returns:
            WorkerOutcome: Success only if the function succeeded and the
            unit exited cleanly.
        """
        timeout = self.settings.worker_timeout_seconds
        while self.is_alive():
            self._drain()
            if timeout is not None and time.monotonic() - self.started_at > timeout:
                exit_code = self._abandon()
                return self._outcome(False, f"timed out after {timeout}s", exit_code)
            await asyncio.sleep(self.settings.worker_poll_interval)
        return self._collect()

    def _outcome(self, success: bool, reason: Optional[str] = None,
                 exit_code: Optional[int] = None) -> WorkerOutcome:
        return WorkerOutcome(
            worker_id=self.worker_id,
            task_type=self.task_type,
            function_name=self.function_name,
            split_index=self.split_index,
            status=TaskStatus.COMPLETED if success else TaskStatus.FAILED,
            reason=reason,
            exit_code=exit_code,
            elapsed_seconds=time.monotonic() - self.started_at,
        )

    def _outcome_from_report(self, report: Optional[Dict[str, Any]],
                             exit_code: Optional[int] = None) -> WorkerOutcome:
        if exit_code is not None and exit_code < 0:
            return self._outcome(False, f"killed by signal {-exit_code}", exit_code)
        if report is None:
            reason = "exited without reporting an outcome"
            if exit_code:
                reason = f"exited with status {exit_code}"
            return self._outcome(False, reason, exit_code)
        if "error" in report:
            return self._outcome(False, report["error"], exit_code)
        if exit_code:
            return self._outcome(False, f"exited with status {exit_code}", exit_code)
        return self._outcome(True, exit_code=exit_code)


class ProcessWorkerUnit(WorkerUnit):
    """Worker unit backed by a forked OS process."""

    def __init__(self, ctx, func, args, closeables, task_type, name, split_index, settings):
        super().__init__(task_type, name, split_index, settings)
        self._conn, child_conn = ctx.Pipe(duplex=False)
        self._report: Optional[Dict[str, Any]] = None
        self._process = ctx.Process(
            target=_process_main,
            args=(func, args, closeables, child_conn),
            name=f"forkmr-{task_type.value}-{split_index if split_index is not None else 0}",
            daemon=True,
        )
        try:
            self._process.start()
        finally:
            child_conn.close()
        self.worker_id = self._process.pid

    @property
    def isolated(self) -> bool:
        return True

    def is_alive(self) -> bool:
        return self._process.is_alive()

    def _abandon(self) -> Optional[int]:
        self._process.terminate()
        self._process.join()
        self._conn.close()
        return self._process.exitcode

    def _drain(self):
        # The child blocks in send() until a large report is read, so read it before join().
        if self._report is None and not self._conn.closed:
            try:
                if self._conn.poll():
                    self._report = self._conn.recv()
            except EOFError:
                pass

    def _collect(self) -> WorkerOutcome:
        self._drain()
        self._process.join()
        self._conn.close()
        return self._outcome_from_report(self._report, self._process.exitcode)


class ThreadWorkerUnit(WorkerUnit):
    """Worker unit backed by a daemon thread; failures are caught in-process."""

    def __init__(self, func, args, closeables, task_type, name, split_index, settings):
        super().__init__(task_type, name, split_index, settings)
        self._reports: List[Dict[str, Any]] = []
        self._thread = threading.Thread(
            target=_execute,
            args=(func, args, closeables, self._reports.append),
            name=f"forkmr-{task_type.value}-{split_index if split_index is not None else 0}",
            daemon=True,
        )
        self._thread.start()
        self.worker_id = self._thread.native_id

    @property
    def isolated(self) -> bool:
        return False

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _abandon(self) -> Optional[int]:
        # Threads cannot be killed; the daemon thread is left to finish on its own.
        return None

    def _collect(self) -> WorkerOutcome:
        self._thread.join()
        return self._outcome_from_report(self._reports[0] if self._reports else None)


class ExecutionSandbox:
    """
    Isolated execution environment for user-defined map and reduce functions.

    With the "process" backend every unit is a forked process, so a crash
    in user code cannot touch the orchestrator's memory, file positions or
    sibling workers. The "thread" backend is lighter and catches failures
    in-process; it shares the interpreter with the orchestrator.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        self.backend = self.settings.worker_backend
        self._ctx = multiprocessing.get_context("fork") if self.backend == "process" else None

    def launch(self, task_type: TaskType, func: Callable, args: Sequence[Any],
               split_index: Optional[int] = None,
               closeables: Sequence[Any] = (), name: Optional[str] = None) -> WorkerUnit:
        """
        Start one worker unit running ``func(*args)``.

        Args:
            task_type: MAP or REDUCE, for diagnostics.
            func: User function (or a wrapper around it).
            args: Positional arguments for ``func``.
            split_index: Split handled by the unit (map workers).
            closeables: Handles the unit closes once ``func`` returns.
            name: Function name reported in outcomes, defaults to ``func``'s name.

        Returns:
            WorkerUnit: Handle to await the outcome on.

        Raises:
            WorkerLaunchError: If the execution unit cannot be created.
        """
        name = name or function_name(func)
        try:
            if self.backend == "process":
                unit = ProcessWorkerUnit(self._ctx, func, args, closeables, task_type, name,
                                         split_index, self.settings)
            else:
                unit = ThreadWorkerUnit(func, args, closeables, task_type, name,
                                        split_index, self.settings)
        except (OSError, RuntimeError) as e:
            raise WorkerLaunchError(
                f"Failed to launch {task_type.value} worker for {name}: {e}",
                split_index=split_index,
            ) from e

        self.logger.debug(f"Launched {task_type.value} worker {unit.worker_id} "
                          f"({unit.function_name}, split {split_index})")
        return unit
