import time
import logging
from typing import Tuple

import numpy as np
import pyopencl as cl

from backend.errors import (NotBoundError, BufferUploadError, DispatchError,
                            ReleaseError, cl_status)
from backend.model.be_opencl import OpenClSession
from backend.program import CompiledKernel
from coloring.palettes import ColorTable
from fractals.base import BLOCK_SIZE
from rendering.surface import InteropSurface
from utils.enums import PrecisionMode

logger = logging.getLogger(__name__)


def global_size(dimension: int, block: int = BLOCK_SIZE) -> int:
    """Smallest multiple of block that covers dimension."""
    return ((int(dimension) + block - 1) // block) * block


def launch_geometry(width: int, height: int,
                    block: int = BLOCK_SIZE) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    return (global_size(width, block), global_size(height, block)), (block, block)


class ComputeDispatcher:
    """
    Drives one synchronous compute pass into the interop surface.
    """
    def __init__(self,
                 session: OpenClSession,
                 kernel: CompiledKernel,
                 surface: InteropSurface,
                 colors: ColorTable,
                 gl,
                 block_size: int = BLOCK_SIZE):
        self.session = session
        self.kernel = kernel
        self.surface = surface
        self.colors = colors
        self.gl = gl
        self.block_size = int(block_size)

    @property
    def view_dtype(self) -> np.dtype:
        if self.kernel.precision is PrecisionMode.Double:
            return np.dtype(np.float64)
        return np.dtype(np.float32)

    def _upload_view(self, ctx: cl.Context, queue: cl.CommandQueue, view: np.ndarray) -> cl.Buffer:
        host = np.ascontiguousarray(view, dtype=self.view_dtype)
        if host.shape != (4,):
            raise BufferUploadError(f"View must hold 4 scalars, got shape {host.shape}")
        try:
            buf = cl.Buffer(ctx, cl.mem_flags.READ_ONLY, host.nbytes)
            cl.enqueue_copy(queue, buf, host, is_blocking=True)
        except cl.Error as e:
            raise BufferUploadError(f"Failed to allocate buffer: {e}", cl_status(e)) from e
        return buf

    def run_frame(self, view: np.ndarray) -> float:
        """
        Renders one frame into the surface texture and returns the elapsed
        wall-clock time in milliseconds.
        """
        t0 = time.perf_counter()

        if not self.surface.is_bound:
            raise NotBoundError("Texture buffer not bound")
        color_buf = self.colors.require_buffer()
        ctx, queue = self.session.require_open()

        view_buf = self._upload_view(ctx, queue, view)

        # Pending GL work must land before OpenCL touches the texture
        self.gl.finish()

        width, height = self.surface.width, self.surface.height
        gsize, lsize = launch_geometry(width, height, self.block_size)
        kernel = self.kernel.kernel

        with self.surface.compute_access(queue) as image:
            try:
                kernel.set_arg(0, image)
                kernel.set_arg(1, np.uint32(width))
                kernel.set_arg(2, np.uint32(height))
                kernel.set_arg(3, view_buf)
                kernel.set_arg(4, np.uint32(self.colors.max_iter))
                kernel.set_arg(5, color_buf)
                evt = cl.enqueue_nd_range_kernel(queue, kernel, gsize, lsize)
                evt.wait()
            except cl.Error as e:
                raise DispatchError(f"enqueueNDRangeKernel failed: {e}", cl_status(e)) from e

        try:
            queue.finish()
        except cl.Error as e:
            raise ReleaseError(f"Queue drain after release failed: {e}", cl_status(e)) from e

        elapsed = (time.perf_counter() - t0) * 1000.0
        logger.debug("Frame %dx%d (global %s) in %.2f ms", width, height, gsize, elapsed)
        return elapsed
