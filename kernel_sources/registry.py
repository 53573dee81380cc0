from __future__ import annotations
from typing import Dict, Any, List

# name -> {"src": <OpenCL C source>, "kernel_name": <entry point>, ...}
_REGISTRY: Dict[str, Dict[str, Any]] = {}


def register_kernel(name: str, src: str, kernel_name: str, **meta: Any) -> None:
    """
    Register an OpenCL kernel source under a short name.
    Example:
        register_kernel("mandelbrot", SRC, kernel_name="mandelbrot")
    """
    _REGISTRY[name.lower()] = {"src": src, "kernel_name": kernel_name, **meta}


def load_kernel(name: str) -> Dict[str, Any]:
    """
    Load kernel metadata from the registry.
    Raises KeyError if not found.
    """
    try:
        return _REGISTRY[name.lower()]
    except KeyError as e:
        raise KeyError(f"Kernel not found for name='{name}'") from e


def list_kernels() -> List[str]:
    return sorted(_REGISTRY)
