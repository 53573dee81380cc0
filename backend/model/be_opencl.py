import sys
import logging
from typing import Optional, Callable, List, Tuple, Any

import pyopencl as cl

from backend.errors import ContextCreationError, QueueCreationError, cl_status
from backend.model.base import ComputeSession
from devices.manager import DeviceManager
from devices.types import DeviceSelection, FP64_EXTENSION, has_extension
from utils.enums import PrecisionMode


logger = logging.getLogger(__name__)

ContextProps = List[Tuple[Any, Any]]


def gl_sharing_properties() -> ContextProps:
    """
    Context properties naming the GL context current on the calling thread.
    """
    from pyopencl.tools import get_gl_sharing_context_properties
    return get_gl_sharing_context_properties()


class OpenClSession(ComputeSession):
    """
    OpenCL context bound to the live OpenGL context plus one in-order queue.
    The GL context must exist and be current on the calling thread.
    """
    name = "OPENCL"

    def __init__(self,
                 selection: DeviceSelection,
                 gl_properties: Callable[[], ContextProps] = gl_sharing_properties):
        self.selection = selection
        self.platform = selection.platform
        self.device = selection.device

        self.ctx: Optional[cl.Context] = self._create_context(gl_properties)

        # Check if double precision is supported
        extensions = getattr(self.device, "extensions", "") or ""
        self._double_precision = has_extension(extensions, FP64_EXTENSION)

        try:
            self.queue: Optional[cl.CommandQueue] = cl.CommandQueue(self.ctx, self.device)
        except cl.Error as e:
            self.ctx = None
            raise QueueCreationError(f"CommandQueue creation failed: {e}", cl_status(e)) from e

        logger.info("OpenCL session ready on '%s' (%s precision)",
                    selection.info.name, self.precision.name)

    @classmethod
    def create(cls,
               devices: Optional[DeviceManager] = None,
               gl_properties: Callable[[], ContextProps] = gl_sharing_properties) -> "OpenClSession":
        selection = (devices or DeviceManager()).choose()
        return cls(selection, gl_properties=gl_properties)

    def _create_context(self, gl_properties: Callable[[], ContextProps]) -> cl.Context:
        try:
            sharing = list(gl_properties())
        except Exception as e:
            raise ContextCreationError(f"Failed to query the current OpenGL context: {e}") from e

        try:
            if sys.platform == "darwin":
                return cl.Context(properties=sharing, devices=[])
            props = [(cl.context_properties.PLATFORM, self.platform)] + sharing
            return cl.Context(properties=props, devices=[self.device])
        except cl.Error as e:
            raise ContextCreationError(f"Create Context failed: {e}", cl_status(e)) from e

    # ---- Queries --------------------------------------------------------

    @property
    def double_precision(self) -> bool:
        return self._double_precision

    @property
    def precision(self) -> PrecisionMode:
        return PrecisionMode.Double if self._double_precision else PrecisionMode.Single

    def require_open(self) -> Tuple[cl.Context, cl.CommandQueue]:
        if self.ctx is None or self.queue is None:
            raise RuntimeError("OpenCL session has been closed")
        return self.ctx, self.queue

    # ---- Lifecycle ------------------------------------------------------

    def close(self) -> None:
        if self.queue is not None:
            try:
                self.queue.finish()
            except cl.Error as e:
                logger.exception("Error finishing OpenCL queue during close: %s", e)
            finally:
                self.queue = None
        self.ctx = None
