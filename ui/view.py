import logging
from typing import Optional

from PySide6.QtCore import Qt, QPoint, QElapsedTimer
from PySide6.QtGui import QPainter, QColor, QKeyEvent, QWheelEvent, QMouseEvent
from PySide6.QtOpenGLWidgets import QOpenGLWidget
from PySide6.QtWidgets import QMessageBox

from fractals.base import RenderSettings
from fractals.view_mapper import ViewMapper
from rendering.gl_texture import GLTextureApi
from rendering.events import ErrorEvent
from rendering.service import FractalPipeline

logger = logging.getLogger(__name__)


# =============================================================================
# OpenGL view
# =============================================================================
class FractalGLView(QOpenGLWidget):
    """
    Owns the OpenGL context, feeds input to the pipeline and presents the
    interop texture as a full-window quad with a text overlay.
    """
    # ---------- Construction ----------
    def __init__(self, settings: Optional[RenderSettings] = None, parent=None):
        super().__init__(parent)
        self.setWindowTitle("OpenCL Fractal")
        self.gl = GLTextureApi()
        self.pipeline = FractalPipeline(settings, gl=self.gl)
        self.pipeline.on_error = self._on_pipeline_error
        self.last_pos = QPoint(0, 0)
        self._painting = False
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    # ---------- GL lifecycle ----------
    def initializeGL(self):
        vmaj, vmin = self.gl.version()
        if vmaj < 2:
            QMessageBox.warning(
                self, "Wrong OpenGL version",
                f"OpenGL version 2.0 or higher needed. You have {vmaj}.{vmin}, "
                f"so some functions may not work properly.")
        logger.info("OpenGL Version: %d.%d", vmaj, vmin)

        self.gl.setup()
        self.context().aboutToBeDestroyed.connect(self._cleanup)

        if not self.pipeline.initialize():
            QMessageBox.warning(self, "OpenCL Error",
                                f"Failed to initialize OpenCL pipeline: {self.pipeline.init_error}")

    def resizeGL(self, width: int, height: int):
        ratio = self.devicePixelRatioF()
        pw, ph = int(width * ratio), int(height * ratio)
        self.gl.viewport(pw, ph)
        self.pipeline.resize(pw, ph)

    def paintGL(self):
        timer = QElapsedTimer()
        timer.start()

        self.gl.clear()
        self._painting = True
        try:
            ok = self.pipeline.render(self.width(), self.height())
        finally:
            self._painting = False
        if ok:
            self.gl.draw_fullscreen_quad(self.pipeline.texture_id)

        self._draw_overlay(ok, timer.elapsed())

    def _on_pipeline_error(self, event: ErrorEvent):
        # Errors raised from key handlers happen outside paintGL
        if event.recoverable and not self._painting:
            self.update()

    def _cleanup(self):
        self.makeCurrent()
        self.pipeline.close()
        self.doneCurrent()

    # ---------- Overlay ----------
    def _draw_overlay(self, ok: bool, elapsed_ms: int) -> None:
        painter = QPainter(self)
        try:
            if not ok:
                painter.setPen(QColor(255, 0, 0))
                painter.drawText(10, 20, f"Error: {self.pipeline.error_message}")
                return

            p = self.pipeline
            info = [
                f"Max iterations (+/-): {p.iteration_budget}",
                f"Supersampling (a/d): {p.supersampling_factor}x",
                "",
                f"Frame time: {elapsed_ms}ms",
                f"Precision: {p.precision}",
            ]
            painter.setPen(QColor(255, 255, 255))
            for i, line in enumerate(info):
                painter.drawText(10, 20 + i * 16, line)
            if p.error_message:
                painter.setPen(QColor(255, 0, 0))
                painter.drawText(10, 20 + len(info) * 16, f"Error: {p.error_message}")
        finally:
            painter.end()

    # ---------- Input ----------
    def _with_context(self, fn, *args):
        # Texture (re)allocation issues GL calls outside paintGL
        self.makeCurrent()
        try:
            return fn(*args)
        finally:
            self.doneCurrent()

    def keyPressEvent(self, event: QKeyEvent):
        key = event.key()
        p = self.pipeline

        if key == Qt.Key.Key_Escape:
            self.close()
        elif key in (Qt.Key.Key_Plus, Qt.Key.Key_Equal):
            p.increase_iterations()
        elif key == Qt.Key.Key_Minus:
            p.decrease_iterations()
        elif key == Qt.Key.Key_C:
            p.toggle_palette()
        elif key == Qt.Key.Key_A:
            self._with_context(p.increase_supersampling)
        elif key == Qt.Key.Key_D:
            self._with_context(p.decrease_supersampling)
        elif key == Qt.Key.Key_Return and event.modifiers() == Qt.KeyboardModifier.AltModifier:
            if self.isFullScreen():
                self.showNormal()
            else:
                self.showFullScreen()
        else:
            super().keyPressEvent(event)
            return

        self.update()
        event.accept()

    def wheelEvent(self, event: QWheelEvent):
        steps = ViewMapper.wheel_steps(event.angleDelta().y())
        if steps:
            self.pipeline.zoom(steps)
            self.update()
        event.accept()

    def mousePressEvent(self, event: QMouseEvent):
        self.last_pos = event.position().toPoint()

    def mouseMoveEvent(self, event: QMouseEvent):
        pos = event.position().toPoint()
        dx = pos.x() - self.last_pos.x()
        dy = pos.y() - self.last_pos.y()

        if event.buttons() & Qt.MouseButton.LeftButton:
            self.pipeline.pan(dx, dy, self.width(), self.height())
            self.update()
            event.accept()

        self.last_pos = pos
