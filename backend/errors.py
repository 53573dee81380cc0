from __future__ import annotations
from typing import Optional


class FractalPipelineError(RuntimeError):
    """
    Base class for every error raised by the compute/graphics pipeline.
    Status holds the underlying OpenCL/OpenGL status code when one is known.
    """
    def __init__(self, message: str, status: Optional[int] = None):
        if status is not None:
            message = f"{message} ( {status} )"
        super().__init__(message)
        self.status = status


# ---- Initialization (unrecoverable for the session) ----------------------

class InitializationError(FractalPipelineError):
    pass


class NoDeviceError(InitializationError):
    pass


class ContextCreationError(InitializationError):
    pass


class QueueCreationError(InitializationError):
    pass


class ProgramBuildError(InitializationError):
    """Carries the device build log verbatim."""
    def __init__(self, message: str, build_log: str = "", status: Optional[int] = None):
        full = f"{message}:\n{build_log}" if build_log else message
        super().__init__(full, status)
        self.build_log = build_log


class KernelResolutionError(InitializationError):
    pass


# ---- Per frame (stored, displayed, retried next frame) --------------------

class FrameError(FractalPipelineError):
    pass


class AllocationError(FrameError):
    pass


class NotBoundError(FrameError):
    pass


class BufferUploadError(FrameError):
    pass


class AcquireError(FrameError):
    pass


class DispatchError(FrameError):
    pass


class ReleaseError(FrameError):
    pass


def cl_status(exc: BaseException) -> Optional[int]:
    """
    Best-effort extraction of the numeric status from a pyopencl.Error.
    """
    try:
        code = exc.code
    except Exception:
        return None
    return int(code) if isinstance(code, int) else None
