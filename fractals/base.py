from dataclasses import dataclass
from typing import Optional

import numpy as np

from coloring.palettes import DEFAULT_ITERATIONS
from utils.enums import PaletteKind

MAX_SUPERSAMPLING = 3
BLOCK_SIZE = 16


@dataclass
class ViewRect:
    """
    Holds the visible rectangle of the complex plane.
    Real limits run along the x axis, imaginary limits along y.
    """
    min_re: float = -1.0
    max_re: float = 1.0
    min_im: float = -1.0
    max_im: float = 1.0

    @property
    def re_span(self) -> float:
        return self.max_re - self.min_re

    @property
    def im_span(self) -> float:
        return self.max_im - self.min_im

    @property
    def center(self) -> tuple[float, float]:
        return (self.min_re + self.max_re) * 0.5, (self.min_im + self.max_im) * 0.5

    def as_array(self, dtype=np.float64) -> np.ndarray:
        return np.array([self.min_re, self.max_re, self.min_im, self.max_im], dtype=dtype)


@dataclass
class RenderSettings:
    """
    Holds the start-up settings of the viewer.
    Max_iter is the iteration budget and the color table length.
    Supersampling is the exponent s; textures are rendered at 2**s times the window size.
    Kernel_source is a registered kernel name or a path to a .cl file.
    """
    max_iter: int = DEFAULT_ITERATIONS
    palette: PaletteKind = PaletteKind.POLY
    supersampling: int = 0
    kernel_source: str = "mandelbrot"
    kernel_name: Optional[str] = "mandelbrot"
    block_size: int = BLOCK_SIZE

    def __post_init__(self):
        if not 0 <= self.supersampling <= MAX_SUPERSAMPLING:
            raise ValueError(f"supersampling must be within 0..{MAX_SUPERSAMPLING}, got {self.supersampling}")
        if self.block_size <= 0:
            raise ValueError(f"block_size must be positive, got {self.block_size}")


def supersampled_size(width: int, height: int, supersampling: int) -> tuple[int, int]:
    factor = 2 ** int(supersampling)
    return int(width) * factor, int(height) * factor
