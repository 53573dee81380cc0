from __future__ import annotations
from typing import List, Any
import logging

import pyopencl as cl

from devices.types import DeviceInfo

logger = logging.getLogger(__name__)


def describe_device(platform_id: int, device_id: int, platform: Any, device: Any) -> DeviceInfo:
    """
    Build a DeviceInfo from a pyopencl platform/device pair.
    """
    name = (getattr(device, "name", None) or f"OpenCL Device {device_id}").strip()
    vendor = getattr(device, "vendor", None)
    # driver/version info: prefer device driver then platform version
    driver = getattr(device, "driver_version", None) or getattr(platform, "version", None)
    version = getattr(device, "version", None) or getattr(platform, "version", None)
    dev_type = getattr(device, "type", 0) or 0
    return DeviceInfo(
        platform_id=platform_id,
        device_id=device_id,
        name=name,
        vendor=vendor.strip() if isinstance(vendor, str) else vendor,
        driver=driver,
        version=version,
        is_gpu=bool(dev_type & cl.device_type.GPU),
        memory_total_mb=int(getattr(device, "global_mem_size", 0) // (1024 ** 2)),
        extensions=getattr(device, "extensions", "") or "",
        extra={
            "platform": getattr(platform, "name", None),
            "cores": getattr(device, "max_compute_units", None),
            "clock_mhz": getattr(device, "max_clock_frequency", None),
        },
    )


class OpenClDeviceProvider:
    backend = "OPENCL"

    @staticmethod
    def enumerate() -> List[DeviceInfo]:
        """
        Probe pyopencl platforms/devices for diagnostics.
        Failures are logged and yield whatever was collected so far.
        """
        devs: List[DeviceInfo] = []
        try:
            plats = cl.get_platforms()
        except cl.Error:
            logger.exception("Failed to query OpenCL platforms")
            return devs

        for p_id, p in enumerate(plats):
            try:
                devices = p.get_devices()
            except cl.Error:
                logger.exception("Failed to query devices for platform %s",
                                 getattr(p, "name", "<unknown>"))
                continue
            for d_id, d in enumerate(devices):
                try:
                    devs.append(describe_device(p_id, d_id, p, d))
                except cl.Error:
                    logger.exception("Failed to read OpenCL device info for platform %s",
                                     getattr(p, "name", "<unknown>"))
        return devs
