from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional

from kernel_sources.registry import load_kernel as load_registered


@dataclass(frozen=True)
class KernelSource:
    src: str
    kernel_name: Optional[str]
    origin: str


def load_kernel_source(identifier: str) -> KernelSource:
    """
    Resolve a kernel identifier: a registered name first, then a file path.
    Raises OSError if the identifier is neither.
    """
    try:
        meta = load_registered(identifier)
    except KeyError:
        meta = None
    if meta is not None:
        return KernelSource(src=meta["src"], kernel_name=meta["kernel_name"],
                            origin=f"registry:{identifier}")

    path = os.path.expanduser(identifier)
    with open(path, "r", encoding="utf-8") as fh:
        src = fh.read()
    return KernelSource(src=src, kernel_name=None, origin=os.path.abspath(path))
