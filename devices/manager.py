from __future__ import annotations
import logging
from typing import List, Optional, Callable, Any

import pyopencl as cl

from backend.errors import NoDeviceError, cl_status
from devices.types import DeviceInfo, DeviceSelection
from devices.providers.prov_opencl import OpenClDeviceProvider, describe_device

logger = logging.getLogger(__name__)


class DeviceManager:
    """
    Enumerates OpenCL platforms and selects the single GPU used for the
    process lifetime: the first device of the first platform exposing a GPU.
    """
    def __init__(self, platforms: Optional[Callable[[], List[Any]]] = None) -> None:
        self._platforms = platforms or cl.get_platforms

    # ---- Discovery ------------------------------------------------------

    @staticmethod
    def list() -> List[DeviceInfo]:
        return OpenClDeviceProvider.enumerate()

    @staticmethod
    def _gpu_devices(platform) -> List[Any]:
        try:
            return list(platform.get_devices(device_type=cl.device_type.GPU))
        except cl.Error as e:
            # DEVICE_NOT_FOUND is reported as an error by the ICD loader
            logger.debug("Platform %s has no GPU devices: %s",
                         getattr(platform, "name", "<unknown>"), e)
            return []

    # ---- Selection ------------------------------------------------------

    def choose(self) -> DeviceSelection:
        try:
            plats = self._platforms()
        except cl.Error as e:
            raise NoDeviceError(f"No platforms found: {e}", cl_status(e)) from e

        if not plats:
            raise NoDeviceError("No platforms found")

        for p_id, platform in enumerate(plats):
            gpus = self._gpu_devices(platform)
            if not gpus:
                continue
            device = gpus[0]
            info = describe_device(p_id, 0, platform, device)
            logger.info("Selected OpenCL device '%s' on platform '%s'",
                        info.name, getattr(platform, "name", p_id))
            if not info.supports_interop:
                logger.warning("Device '%s' does not report GL sharing support", info.name)
            return DeviceSelection(platform=platform, device=device, info=info)

        raise NoDeviceError("No suitable devices found (CL_DEVICE_TYPE_GPU)")
