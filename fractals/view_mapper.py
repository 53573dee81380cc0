from typing import Optional

import numpy as np

from fractals.base import ViewRect

ZOOM_RATE = 0.05


class ViewMapper:
    """
    Owns the logical view rectangle, applies navigation input and produces the
    aspect-corrected 4-scalar view the kernel consumes.

    The fitted view is kept in both float64 and float32; only the one matching
    the compiled precision is read by the dispatcher.
    """
    def __init__(self, rect: Optional[ViewRect] = None):
        self.rect = rect or ViewRect()
        self._view_f64 = self.rect.as_array(np.float64)
        self._view_f32 = self.rect.as_array(np.float32)

    # ---------- Aspect correction ----------
    def set_view(self, min_re: float, max_re: float, min_im: float, max_im: float) -> None:
        self._view_f64 = np.array([min_re, max_re, min_im, max_im], dtype=np.float64)
        self._view_f32 = self._view_f64.astype(np.float32)

    def fit_aspect(self, viewport_w: int, viewport_h: int) -> ViewRect:
        """
        Shrinks the shorter screen axis' span so that the rectangle matches the
        viewport aspect, keeping it centered. Returns the fitted rectangle.
        """
        r = self.rect
        w, h = max(1, int(viewport_w)), max(1, int(viewport_h))
        if w > h:
            span = r.im_span
            fact = (span - span / w * h) * 0.5
            fitted = ViewRect(r.min_re, r.max_re, r.min_im + fact, r.max_im - fact)
        else:
            span = r.re_span
            fact = (span - span / h * w) * 0.5
            fitted = ViewRect(r.min_re + fact, r.max_re - fact, r.min_im, r.max_im)
        self.set_view(fitted.min_re, fitted.max_re, fitted.min_im, fitted.max_im)
        return fitted

    def view_array(self, double_precision: bool) -> np.ndarray:
        return self._view_f64 if double_precision else self._view_f32

    # ---------- Navigation ----------
    def pan(self, dx: float, dy: float, viewport_w: int, viewport_h: int) -> None:
        """
        Screen-space drag (pixels) -> complex-plane shift proportional to the current span.
        Screen y grows downward while the imaginary axis grows upward.
        """
        r = self.rect
        scaled_x = dx / max(1, viewport_w) * r.re_span
        scaled_y = dy / max(1, viewport_h) * r.im_span
        r.min_re -= scaled_x
        r.max_re -= scaled_x
        r.min_im += scaled_y
        r.max_im += scaled_y

    def zoom(self, steps: float, rate: float = ZOOM_RATE) -> None:
        """
        Positive steps zoom in. Each side moves by rate * span * steps, so the
        center is preserved and both axes scale by the same factor.
        """
        r = self.rect
        scale = rate * r.re_span * steps
        ratio = r.im_span / r.re_span if r.re_span else 1.0
        if r.re_span - 2.0 * scale <= 0.0:
            return
        r.min_re += scale
        r.max_re -= scale
        r.min_im += scale * ratio
        r.max_im -= scale * ratio

    @staticmethod
    def wheel_steps(angle_delta: int) -> int:
        """Qt reports eighths of a degree; one notch is 15 degrees."""
        return int(angle_delta / 8 / 15)
