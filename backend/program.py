from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

import pyopencl as cl

from backend.errors import ProgramBuildError, KernelResolutionError, cl_status
from backend.model.be_opencl import OpenClSession
from kernel_sources import KernelSource, load_kernel_source
from utils.enums import PrecisionMode

logger = logging.getLogger(__name__)

DOUBLE_DIRECTIVE = "#define USE_DOUBLE 1\r\n"


@dataclass(frozen=True)
class CompiledKernel:
    """
    A compiled program with its single active entry point.
    """
    program: cl.Program
    kernel: cl.Kernel
    kernel_name: str
    precision: PrecisionMode


def prepare_source(src: str, double_precision: bool) -> str:
    """
    Prepend the precision switch when the device supports doubles.
    """
    if double_precision:
        return DOUBLE_DIRECTIVE + src
    return src


class ProgramBuilder:
    """
    Loads kernel source, injects the precision directive, compiles it against
    the session device and resolves the named entry point.
    """
    def __init__(self, session: OpenClSession):
        self.session = session

    def load(self, identifier: str) -> KernelSource:
        try:
            return load_kernel_source(identifier)
        except OSError as e:
            raise ProgramBuildError(f"Failed to open file: {identifier}") from e
        except ValueError as e:
            # UnicodeDecodeError for sources that are not UTF-8 text
            raise ProgramBuildError(f"Failed to read kernel source: {identifier}: {e}") from e

    def build(self, identifier: str, kernel_name: Optional[str] = None) -> CompiledKernel:
        source = self.load(identifier)
        name = kernel_name or source.kernel_name
        if not name:
            raise KernelResolutionError(f"No kernel name given for {source.origin}")

        ctx, _ = self.session.require_open()
        device = self.session.device
        src = prepare_source(source.src, self.session.double_precision)

        try:
            program = cl.Program(ctx, src)
        except cl.Error as e:
            raise ProgramBuildError(f"Failed to create program: {e}", status=cl_status(e)) from e

        try:
            program.build(options=[], devices=[device])
        except cl.Error as e:
            try:
                log = program.get_build_info(device, cl.program_build_info.LOG)
            except cl.Error:
                logger.exception("Failed to fetch build log for %s", source.origin)
                log = ""
            # pyopencl folds the log into the message when the program was built through its cache
            log = (log or "").strip() or str(e)
            raise ProgramBuildError("Build error", build_log=log, status=cl_status(e)) from e

        try:
            kernel = cl.Kernel(program, name)
        except cl.Error as e:
            raise KernelResolutionError(f"Failed to load kernel: {name}", cl_status(e)) from e

        logger.info("Built kernel '%s' from %s (%s precision)",
                    name, source.origin, self.session.precision.name)
        return CompiledKernel(program=program, kernel=kernel, kernel_name=name,
                              precision=self.session.precision)
