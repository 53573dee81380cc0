from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FrameEvent:
    texture_id: int
    width: int
    height: int
    elapsed_ms: float
    seq: int        # frame sequence number


@dataclass(frozen=True)
class ErrorEvent:
    message: str
    recoverable: bool
    status: Optional[int] = None
