import logging
from typing import Optional

import numpy as np
import pyopencl as cl

from backend.errors import BufferUploadError, NotBoundError, cl_status
from backend.model.be_opencl import OpenClSession
from utils.enums import PaletteKind

logger = logging.getLogger(__name__)

MIN_ITERATIONS = 100
ITERATION_STEP = 100
DEFAULT_ITERATIONS = 500


def palette_table(palette: PaletteKind, max_iter: int) -> np.ndarray:
    """
    Computes the RGBA lookup table for a palette.

    Parameters:
        palette (PaletteKind): POLY or TRIG.
        max_iter (int): Number of entries, one per iteration count.

    Returns:
        np.ndarray: float32 array of shape (max_iter, 4).
    """
    t = np.arange(max_iter, dtype=np.float64) / float(max_iter)
    u = 1.0 - t
    warm = 9.0 * u * t ** 3
    mid = 15.0 * u ** 2 * t ** 2
    cool = 8.5 * u ** 3 * t

    table = np.empty((max_iter, 4), dtype=np.float32)
    if palette is PaletteKind.POLY:
        table[:, 0], table[:, 2] = warm, cool
    elif palette is PaletteKind.TRIG:
        table[:, 0], table[:, 2] = cool, warm
    else:
        raise ValueError(f"Unknown palette {palette!r}")
    table[:, 1] = mid
    table[:, 3] = 1.0
    return table


class ColorTable:
    """
    Iteration-count -> RGBA lookup table mirrored in a read-only device buffer.
    The device buffer is replaced wholesale on every regeneration.
    """
    def __init__(self, session: OpenClSession,
                 palette: PaletteKind = PaletteKind.POLY,
                 max_iter: int = DEFAULT_ITERATIONS):
        self.session = session
        self.palette = palette
        self.max_iter = max(int(max_iter), MIN_ITERATIONS)
        self.table: Optional[np.ndarray] = None
        self.buffer: Optional[cl.Buffer] = None

    @property
    def is_bound(self) -> bool:
        return self.buffer is not None

    def regenerate(self, palette: PaletteKind, max_iter: int) -> None:
        table = palette_table(palette, max_iter)
        ctx, queue = self.session.require_open()
        try:
            buf = cl.Buffer(ctx, cl.mem_flags.READ_ONLY, table.nbytes)
            cl.enqueue_copy(queue, buf, table, is_blocking=True)
            queue.finish()
        except cl.Error as e:
            raise BufferUploadError(f"Precompute Color Failure: {e}", cl_status(e)) from e

        self.palette = palette
        self.max_iter = int(max_iter)
        self.table = table
        self.buffer = buf
        logger.debug("Color table regenerated: %s x %d", palette.name, max_iter)

    def set_iteration_budget(self, value: int) -> bool:
        """
        Returns False (and changes nothing) for budgets below MIN_ITERATIONS.
        """
        if value < MIN_ITERATIONS:
            return False
        self.regenerate(self.palette, int(value))
        return True

    def set_palette(self, palette: PaletteKind) -> None:
        self.regenerate(palette, self.max_iter)

    def toggle_palette(self) -> PaletteKind:
        self.set_palette(self.palette.toggled())
        return self.palette

    def require_buffer(self) -> cl.Buffer:
        if self.buffer is None:
            raise NotBoundError("Color buffer not bound")
        return self.buffer

    def release(self) -> None:
        self.buffer = None
        self.table = None
