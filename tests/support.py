from __future__ import annotations
import itertools
from contextlib import contextmanager
from types import SimpleNamespace
from typing import List, Optional
from unittest import mock

import pyopencl as cl

from backend.errors import AllocationError
from devices.types import DeviceInfo, DeviceSelection
from utils.enums import PrecisionMode

GL_TEXTURE_2D = 0x0DE1


def cl_error(message: str = "failure") -> cl.Error:
    return cl.RuntimeError(message)


class FakeGL:
    """
    Stands in for GLTextureApi; records every call in `calls`.
    """
    target = GL_TEXTURE_2D

    def __init__(self, calls: Optional[list] = None):
        self.calls = calls if calls is not None else []
        self._ids = itertools.count(1)
        self.fail_next_alloc = False
        self.live: set = set()

    def create_texture(self, width: int, height: int) -> int:
        if self.fail_next_alloc:
            self.fail_next_alloc = False
            self.calls.append(("gl_create_failed", width, height))
            raise AllocationError("Out of video memory", 0x0505)
        tex = next(self._ids)
        self.live.add(tex)
        self.calls.append(("gl_create", tex, width, height))
        return tex

    def delete_texture(self, texture_id: int) -> None:
        self.live.discard(texture_id)
        self.calls.append(("gl_delete", texture_id))

    def finish(self) -> None:
        self.calls.append(("gl_finish",))


class FakeSession:
    """
    Minimal OpenClSession: a context/queue pair and a precision flag.
    """
    def __init__(self, double_precision: bool = False, calls: Optional[list] = None):
        self.calls = calls if calls is not None else []
        self.ctx = mock.MagicMock(name="ctx")
        self.queue = mock.MagicMock(name="queue")
        self.queue.finish.side_effect = lambda: self.calls.append(("queue_finish",))
        self.device = mock.MagicMock(name="device")
        self.double_precision = double_precision

    @property
    def precision(self) -> PrecisionMode:
        return PrecisionMode.Double if self.double_precision else PrecisionMode.Single

    def require_open(self):
        return self.ctx, self.queue

    def close(self):
        self.ctx = self.queue = None


def fake_device(extensions: str = "cl_khr_gl_sharing", name: str = "Fake GPU", gpu: bool = True):
    return SimpleNamespace(
        name=name,
        vendor="Fake Vendor",
        driver_version="1.0",
        version="OpenCL 1.2",
        type=cl.device_type.GPU if gpu else cl.device_type.CPU,
        global_mem_size=2 * 1024 ** 3,
        extensions=extensions,
        max_compute_units=8,
        max_clock_frequency=1000,
    )


class FakePlatform:
    def __init__(self, name: str, gpus: Optional[List] = None, others: Optional[List] = None):
        self.name = name
        self.version = "OpenCL 1.2"
        self._gpus = gpus or []
        self._others = others or []

    def get_devices(self, device_type=None):
        if device_type == cl.device_type.GPU:
            if not self._gpus:
                raise cl_error("clGetDeviceIDs failed: DEVICE_NOT_FOUND")
            return list(self._gpus)
        return list(self._gpus) + list(self._others)


def fake_selection(extensions: str = "cl_khr_gl_sharing") -> DeviceSelection:
    dev = fake_device(extensions)
    plat = FakePlatform("Fake Platform", gpus=[dev])
    info = DeviceInfo(platform_id=0, device_id=0, name=dev.name, extensions=extensions, is_gpu=True)
    return DeviceSelection(platform=plat, device=dev, info=info)


@contextmanager
def patched_cl(calls: Optional[list] = None):
    """
    Replaces the pyopencl entry points the pipeline uses with recording mocks.
    Yields the dict of mocks keyed by attribute name.
    """
    calls = calls if calls is not None else []

    def make_buffer(ctx, flags, size=0, hostbuf=None):
        calls.append(("buffer", flags, size))
        return mock.MagicMock(name=f"buffer[{size}]", size=size)

    def copy(queue, dest, src, is_blocking=True, **kwargs):
        calls.append(("copy", getattr(src, "nbytes", None)))
        return mock.MagicMock(name="copy_event")

    def gl_texture(ctx, flags, target, miplevel, texture, dims=None):
        calls.append(("cl_wrap", texture))
        image = mock.MagicMock(name=f"image[{texture}]")
        image.release.side_effect = lambda: calls.append(("cl_release", texture))
        return image

    def acquire(queue, mem_objects, wait_for=None):
        calls.append(("acquire",))
        return mock.MagicMock(name="acquire_event")

    def release(queue, mem_objects, wait_for=None):
        calls.append(("release",))
        return mock.MagicMock(name="release_event")

    def launch(queue, kernel, global_size, local_size, *args, **kwargs):
        calls.append(("launch", tuple(global_size), tuple(local_size)))
        evt = mock.MagicMock(name="kernel_event")
        evt.wait.side_effect = lambda: calls.append(("kernel_wait",))
        return evt

    # patch.multiple only reports mocks it creates itself, so keep our own map
    mocks = dict(
        Buffer=mock.MagicMock(side_effect=make_buffer),
        enqueue_copy=mock.MagicMock(side_effect=copy),
        GLTexture=mock.MagicMock(side_effect=gl_texture),
        enqueue_acquire_gl_objects=mock.MagicMock(side_effect=acquire),
        enqueue_release_gl_objects=mock.MagicMock(side_effect=release),
        enqueue_nd_range_kernel=mock.MagicMock(side_effect=launch),
        Context=mock.MagicMock(name="Context"),
        CommandQueue=mock.MagicMock(name="CommandQueue"),
        Program=mock.MagicMock(name="Program"),
        Kernel=mock.MagicMock(name="Kernel"),
    )
    with mock.patch.multiple(cl, **mocks):
        yield mocks


def names(calls: list) -> List[str]:
    return [c[0] for c in calls]
