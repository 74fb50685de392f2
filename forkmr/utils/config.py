import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration for the forkmr engine.

    Values are loaded from environment variables prefixed with ``FORKMR_``
    or from a ``.env`` file in the current directory.

    Attributes:
        work_dir (str): Directory holding intermediate and result files.
        intermediate_template (str): File name pattern for per-split output.
        result_filename (str): File name of the final reduce output.
        worker_backend (str): Execution unit behind a worker ("process" or "thread").
        worker_timeout_seconds (Optional[float]): Per-worker timeout, disabled when None.
        worker_poll_interval (float): Poll interval used while joining workers.
        scan_chunk_size (int): Read size used when scanning for split boundaries.
        cleanup_intermediates (bool): Remove intermediate files after a successful reduce.
        log_level (str): Logging level for engine loggers.
    """
    work_dir: str = Field(".", description="Directory for intermediate and result files")
    intermediate_template: str = Field("mr-{index}.itm", description="Intermediate file name pattern")
    result_filename: str = Field("result.txt", description="Result file name")
    worker_backend: Literal["process", "thread"] = Field("process", description="Worker execution unit")
    worker_timeout_seconds: Optional[float] = Field(None, gt=0, description="Per-worker timeout (seconds)")
    worker_poll_interval: float = Field(0.005, gt=0, description="Barrier poll interval (seconds)")
    scan_chunk_size: int = Field(4096, ge=1, description="Boundary scan read size (bytes)")
    cleanup_intermediates: bool = Field(False, description="Delete intermediate files after reduce")
    log_level: str = Field("info", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FORKMR_",
    )

    def intermediate_path(self, index: int) -> str:
        """Path of the intermediate file written by the map worker for split ``index``."""
        return os.path.join(self.work_dir, self.intermediate_template.format(index=index))

    def result_path(self) -> str:
        return os.path.join(self.work_dir, self.result_filename)


@lru_cache()
def get_settings() -> Settings:
    """
    Retrieve a cached instance of the engine settings.

    Returns:
        Settings: The process-wide configuration.
    """
    return Settings()
