# Standard library imports for enumeration and paths
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List

# Third-party imports for data validation
from pydantic import BaseModel, ConfigDict, Field


class JobPhase(str, Enum):
    """
    Linear state machine followed by the orchestrator for one job.

    VALIDATE -> SPLIT -> MAP -> OPEN_INTERMEDIATES -> REDUCE -> FINALIZE,
    ending in COMPLETED. Any failure moves straight to FAILED.
    """
    VALIDATE = "validate"
    SPLIT = "split"
    MAP = "map"
    OPEN_INTERMEDIATES = "open_intermediates"
    REDUCE = "reduce"
    FINALIZE = "finalize"
    COMPLETED = "completed"
    FAILED = "failed"


class JobSpec(BaseModel):
    """
    Immutable description of a MapReduce job.

    Field types are checked on construction; semantic checks (readable,
    non-empty input, split count within the input size) happen in the
    orchestrator's VALIDATE phase so they surface as InvalidSpecError.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    input_path: Path                            # File to partition
    split_count: int                            # Number of map workers (>= 1)
    map_fn: Callable                            # map(split, output) -> success | failure
    reduce_fn: Callable                         # reduce(inputs, output) -> success | failure
    user_context: Any = None                    # Opaque value handed to every map worker


class JobResult(BaseModel):
    """
    Outcome of a successful job. Built once by the orchestrator, then frozen.
    """

    model_config = ConfigDict(frozen=True)

    map_worker_ids: List[int]                   # One identifier per split, in split order
    reduce_worker_id: int
    output_path: str                            # Result file
    elapsed_micros: int = Field(..., ge=0)      # Wall-clock time of SPLIT through FINALIZE
    intermediate_paths: List[str] = []          # Map outputs, in split order
