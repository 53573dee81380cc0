from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

FP64_EXTENSION = "cl_khr_fp64"
GL_SHARING_EXTENSIONS = ("cl_khr_gl_sharing", "cl_APPLE_gl_sharing")


@dataclass(frozen=True)
class DeviceInfo:
    """
    Describes an OpenCL device as seen during enumeration.
    Capability flags are derived from the device extension string.
    """
    platform_id: int
    device_id: int
    name: str
    vendor: Optional[str] = None
    driver: Optional[str] = None
    version: Optional[str] = None
    is_gpu: bool = False
    memory_total_mb: Optional[int] = None
    extensions: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def supports_double(self) -> bool:
        return has_extension(self.extensions, FP64_EXTENSION)

    @property
    def supports_interop(self) -> bool:
        return any(has_extension(self.extensions, ext) for ext in GL_SHARING_EXTENSIONS)


@dataclass(frozen=True)
class DeviceSelection:
    """
    The platform/device pair chosen for the process lifetime.
    """
    platform: Any
    device: Any
    info: DeviceInfo


def has_extension(extensions: str, token: str) -> bool:
    return token in (extensions or "").split()
