import os
from typing import Any, BinaryIO, List, Optional

from forkmr.core.errors import InvalidSpecError
from forkmr.models.job import JobPhase
from forkmr.models.split import Split
from forkmr.utils.config import Settings, get_settings
from forkmr.utils.logger import get_logger

# A split may end after either byte. "." is a sentence heuristic and will
# also match abbreviations such as "Mr.".
SPLIT_TERMINATORS = b"\n."


class DataSplitter:
    """
    Computes byte-range partitions of an input file for the map workers.

    Every split but the last starts at the running offset, takes the
    nominal size ``S // N``, then grows byte by byte until it includes
    a line or sentence terminator. The last split takes whatever is left,
    so the splits always cover ``[0, S)`` with no gaps or overlaps. A scan
    that reaches end of file stops there, which leaves the following
    splits empty; the orchestrator rejects such plans.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 terminators: bytes = SPLIT_TERMINATORS):
        self.settings = settings or get_settings()
        self.terminators = terminators
        self.logger = get_logger(__name__)

    def split(self, source: BinaryIO, total_size: int, split_count: int,
              user_context: Any = None) -> List[Split]:
        """
        Partition an open binary file into ``split_count`` contiguous ranges.

        Args:
            source: Binary file object with random access; its position is changed.
            total_size: Size of the file in bytes.
            split_count: Number of splits to produce.
            user_context: Opaque value attached to every split.

        Returns:
            List[Split]: Exactly ``split_count`` splits in offset order.

        Raises:
            InvalidSpecError: If ``total_size`` or ``split_count`` is not positive.
        """
        if total_size <= 0:
            raise InvalidSpecError(f"Input size must be positive, got {total_size}", phase=JobPhase.SPLIT)
        if split_count <= 0:
            raise InvalidSpecError(f"Split count must be positive, got {split_count}", phase=JobPhase.SPLIT)

        nominal = total_size // split_count
        splits = []
        offset = 0

        for index in range(split_count):
            if index < split_count - 1:
                end = self._boundary_after(source, min(offset + nominal, total_size), total_size)
            else:
                end = total_size
            splits.append(Split(index=index, offset=offset, length=end - offset, user_context=user_context))
            self.logger.debug(f"Split {index}: offset={offset} length={end - offset}")
            offset = end

        return splits

    def split_file(self, path: str, split_count: int, user_context: Any = None) -> List[Split]:
        """Open ``path`` and partition it; see ``split``."""
        with open(path, "rb") as source:
            total_size = os.fstat(source.fileno()).st_size
            return self.split(source, total_size, split_count, user_context)

    def _boundary_after(self, source: BinaryIO, position: int, total_size: int) -> int:
        """Offset just past the first terminator at or after ``position``, or end of file."""
        source.seek(position)
        while position < total_size:
            chunk = source.read(self.settings.scan_chunk_size)
            if not chunk:
                break
            hits = [i for i in (chunk.find(t) for t in self._terminator_bytes()) if i >= 0]
            if hits:
                return position + min(hits) + 1
            position += len(chunk)
        return total_size

    def _terminator_bytes(self) -> List[bytes]:
        return [self.terminators[i:i + 1] for i in range(len(self.terminators))]


def empty_splits(splits: List[Split]) -> List[int]:
    """Indices of splits with no bytes."""
    return [split.index for split in splits if split.length == 0]
