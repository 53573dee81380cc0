# Kernel sources package
from .registry import register_kernel, load_kernel, list_kernels
from .loader import KernelSource, load_kernel_source

# Built-in kernels register themselves on import
from .opencl import mandelbrot as _mandelbrot  # noqa: F401

__all__ = [
    "KernelSource",
    "load_kernel_source",
    "register_kernel",
    "load_kernel",
    "list_kernels",
]
__version__ = "0.3.0"
