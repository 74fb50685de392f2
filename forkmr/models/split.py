from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Split(BaseModel):
    """
    One contiguous byte range of the input file, assigned to one map worker.

    The orchestrator creates splits without data; the map worker fills
    ``data`` with exactly ``length`` bytes read from its own cursor on the
    input before handing the split to the user map function.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    index: int = Field(..., ge=0)               # Position of the split in split order
    offset: int = Field(..., ge=0)              # First byte of the range
    length: int = Field(..., ge=0)              # Number of bytes in the range
    user_context: Any = None                    # Opaque job context, passed through unchanged
    data: bytes = Field(b"", repr=False)        # Split bytes, populated inside the worker

    @property
    def end(self) -> int:
        """Offset one past the last byte of the split."""
        return self.offset + self.length

    def text(self, encoding: str = "utf-8") -> str:
        return self.data.decode(encoding, errors="replace")
