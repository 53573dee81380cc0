from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Optional, Iterator

import pyopencl as cl

from backend.errors import (AllocationError, NotBoundError, AcquireError,
                            ReleaseError, cl_status)
from backend.model.be_opencl import OpenClSession
from utils.enums import SurfaceOwnership

logger = logging.getLogger(__name__)


class InteropSurface:
    """
    An OpenGL texture and the write-only OpenCL image aliasing it.

    Both handles are created together and destroyed together; after a failed
    resize neither exists. Ownership moves between the GL and CL sides only
    through acquire()/release().
    """
    def __init__(self, session: OpenClSession, gl):
        self.session = session
        self.gl = gl
        self.width = 0
        self.height = 0
        self.texture_id: Optional[int] = None
        self.image: Optional[cl.GLTexture] = None
        self.state = SurfaceOwnership.RENDERING_OWNED

    @property
    def is_bound(self) -> bool:
        return self.image is not None and self.texture_id is not None

    # ---------- Lifecycle ----------
    def resize(self, width: int, height: int) -> None:
        if self.state is SurfaceOwnership.COMPUTE_OWNED:
            raise AllocationError("Texture is acquired by OpenCL; cannot resize")

        self.destroy()

        width, height = int(width), int(height)
        if width <= 0 or height <= 0:
            raise AllocationError(f"Invalid texture size {width}x{height}")

        ctx, _ = self.session.require_open()
        tex = self.gl.create_texture(width, height)
        try:
            image = cl.GLTexture(ctx, cl.mem_flags.WRITE_ONLY, self.gl.target, 0, tex, 2)
        except cl.Error as e:
            self.gl.delete_texture(tex)
            raise AllocationError(f"clCreateFromGLTexture2D failed: {e}", cl_status(e)) from e

        self.texture_id = tex
        self.image = image
        self.width, self.height = width, height
        logger.debug("Interop surface resized to %dx%d (texture %d)", width, height, tex)

    def destroy(self) -> None:
        # The CL wrapper goes first so it never references a deleted texture
        if self.image is not None:
            image, self.image = self.image, None
            try:
                image.release()
            except cl.Error:
                logger.exception("Error releasing OpenCL image")
        if self.texture_id is not None:
            tex, self.texture_id = self.texture_id, None
            self.gl.delete_texture(tex)
        self.width = self.height = 0

    # ---------- Ownership ----------
    def acquire(self, queue: cl.CommandQueue) -> None:
        if not self.is_bound:
            raise NotBoundError("Texture buffer not bound")
        if self.state is SurfaceOwnership.COMPUTE_OWNED:
            raise AcquireError("AcquireGLObjects failed: texture already acquired")
        try:
            cl.enqueue_acquire_gl_objects(queue, [self.image])
        except cl.Error as e:
            raise AcquireError(f"AcquireGLObjects failed: {e}", cl_status(e)) from e
        self.state = SurfaceOwnership.COMPUTE_OWNED

    def release(self, queue: cl.CommandQueue) -> None:
        if self.state is not SurfaceOwnership.COMPUTE_OWNED:
            return
        try:
            cl.enqueue_release_gl_objects(queue, [self.image])
        except cl.Error as e:
            raise ReleaseError(f"ReleaseGLObjects failed: {e}", cl_status(e)) from e
        finally:
            self.state = SurfaceOwnership.RENDERING_OWNED

    @contextmanager
    def compute_access(self, queue: cl.CommandQueue) -> Iterator[cl.GLTexture]:
        """
        Scoped acquisition: the image is handed back to GL on every exit path.
        """
        self.acquire(queue)
        try:
            yield self.image
        except BaseException:
            try:
                self.release(queue)
            except ReleaseError:
                logger.exception("Release after failed dispatch also failed")
            raise
        self.release(queue)
