from __future__ import annotations
import logging
from typing import Callable, Optional

from backend.errors import (FractalPipelineError, InitializationError,
                            FrameError, AllocationError, NotBoundError)
from backend.model.be_opencl import OpenClSession, gl_sharing_properties
from backend.program import ProgramBuilder, CompiledKernel
from coloring.palettes import ColorTable, ITERATION_STEP, MIN_ITERATIONS
from devices.manager import DeviceManager
from fractals.base import RenderSettings, MAX_SUPERSAMPLING, supersampled_size
from fractals.view_mapper import ViewMapper
from rendering.dispatcher import ComputeDispatcher
from rendering.events import FrameEvent, ErrorEvent
from rendering.surface import InteropSurface
from utils.enums import PaletteKind, PrecisionMode

logger = logging.getLogger(__name__)


class FractalPipeline:
    """
    UI-facing facade that owns:
      - the OpenCL session, compiled kernel, interop surface and color table,
      - the view state and navigation,
      - the per-frame error state and the presentation queries.

    All methods must be called from the thread that owns the GL context.
    Initialization errors leave the pipeline unusable; frame errors are
    stored, reported and cleared on the next frame.
    """

    def __init__(self,
                 settings: Optional[RenderSettings] = None,
                 gl=None,
                 devices: Optional[DeviceManager] = None,
                 gl_properties: Callable = gl_sharing_properties) -> None:
        self.settings = settings or RenderSettings()
        self.gl = gl
        self._devices = devices
        self._gl_properties = gl_properties

        self.view = ViewMapper()
        self.supersampling = int(self.settings.supersampling)

        self.session: Optional[OpenClSession] = None
        self.kernel: Optional[CompiledKernel] = None
        self.surface: Optional[InteropSurface] = None
        self.colors: Optional[ColorTable] = None
        self.dispatcher: Optional[ComputeDispatcher] = None

        self.init_error: Optional[InitializationError] = None
        self.error: Optional[FractalPipelineError] = None
        self._resize_error: Optional[AllocationError] = None
        # Last failed color table update; the frame keeps using the previous table
        self._table_error: Optional[FrameError] = None

        self.base_width = 0
        self.base_height = 0
        self.last_frame_ms = 0.0
        self.frames = 0

        # Callbacks
        self.on_frame: Optional[Callable[[FrameEvent], None]] = None
        self.on_error: Optional[Callable[[ErrorEvent], None]] = None

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------

    def initialize(self) -> bool:
        """
        One-shot setup: device -> session -> program -> color table.
        Returns False (and keeps init_error) if any step fails.
        """
        if self.gl is None:
            from rendering.gl_texture import GLTextureApi
            self.gl = GLTextureApi()

        st = self.settings
        try:
            self.session = OpenClSession.create(self._devices, gl_properties=self._gl_properties)
            self.kernel = ProgramBuilder(self.session).build(st.kernel_source, st.kernel_name)
            self.surface = InteropSurface(self.session, self.gl)
            self.colors = ColorTable(self.session, st.palette, st.max_iter)
            self.colors.regenerate(st.palette, self.colors.max_iter)
            self.dispatcher = ComputeDispatcher(self.session, self.kernel, self.surface,
                                                self.colors, self.gl, st.block_size)
        except InitializationError as e:
            logger.error("Failed to initialize OpenCL pipeline: %s", e)
            self.init_error = e
            self._teardown()
            self._emit_error(e, recoverable=False)
            return False
        except FrameError as e:
            # Color table upload failing during setup makes the session unusable as well
            logger.error("Failed to initialize OpenCL pipeline: %s", e)
            self.init_error = InitializationError(str(e), e.status)
            self._teardown()
            self._emit_error(self.init_error, recoverable=False)
            return False

        if self.base_width and self.base_height:
            self.resize(self.base_width, self.base_height)
        return True

    @property
    def ready(self) -> bool:
        return self.init_error is None and self.dispatcher is not None

    def _teardown(self) -> None:
        if self.surface is not None:
            self.surface.destroy()
        if self.colors is not None:
            self.colors.release()
        if self.session is not None:
            self.session.close()
        self.surface = self.colors = self.dispatcher = self.kernel = self.session = None

    def close(self) -> None:
        self._teardown()

    # ---------------------------------------------------------------------
    # Configuration
    # ---------------------------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        """
        Recreates the interop surface at width/height times 2**supersampling.
        Failures are kept and reported by the next frame.
        """
        self.base_width, self.base_height = int(width), int(height)
        if not self.ready:
            return
        w, h = supersampled_size(width, height, self.supersampling)
        try:
            self.surface.resize(w, h)
        except AllocationError as e:
            logger.error("Texture allocation %dx%d failed: %s", w, h, e)
            self._resize_error = e
            self.error = e
            self._emit_error(e, recoverable=True)
            return
        self._resize_error = None
        self.error = self._table_error

    def set_supersampling(self, level: int) -> bool:
        level = int(level)
        if not 0 <= level <= MAX_SUPERSAMPLING or level == self.supersampling:
            return False
        self.supersampling = level
        if self.base_width and self.base_height:
            self.resize(self.base_width, self.base_height)
        return True

    def increase_supersampling(self) -> bool:
        return self.set_supersampling(self.supersampling + 1)

    def decrease_supersampling(self) -> bool:
        return self.set_supersampling(self.supersampling - 1)

    def set_iteration_budget(self, value: int) -> bool:
        if not self.ready:
            return False
        try:
            changed = self.colors.set_iteration_budget(value)
        except FrameError as e:
            self._store_table_error(e)
            return False
        if changed:
            self._clear_table_error()
        return changed

    def increase_iterations(self) -> bool:
        return self.set_iteration_budget(self.iteration_budget + ITERATION_STEP)

    def decrease_iterations(self) -> bool:
        return self.set_iteration_budget(self.iteration_budget - ITERATION_STEP)

    def set_palette(self, palette: PaletteKind) -> None:
        if not self.ready:
            return
        try:
            self.colors.set_palette(palette)
        except FrameError as e:
            self._store_table_error(e)
            return
        self._clear_table_error()

    def toggle_palette(self) -> None:
        self.set_palette(self.palette.toggled())

    # ---------------------------------------------------------------------
    # Navigation
    # ---------------------------------------------------------------------

    def pan(self, dx: float, dy: float, viewport_w: int, viewport_h: int) -> None:
        self.view.pan(dx, dy, viewport_w, viewport_h)

    def zoom(self, steps: float) -> None:
        self.view.zoom(steps)

    # ---------------------------------------------------------------------
    # Frame
    # ---------------------------------------------------------------------

    def render(self, viewport_w: int, viewport_h: int) -> bool:
        """
        Runs one compute pass for the current view. Returns True when the
        surface holds a fresh frame; otherwise `error` describes why not.
        A failed color table update stays in `error` even for drawn frames,
        until a later update succeeds.
        """
        if not self.ready:
            if self.init_error is None:
                self.error = NotBoundError("Pipeline not initialized")
            else:
                self.error = self.init_error
            return False

        self.error = self._table_error
        try:
            if self._resize_error is not None:
                raise NotBoundError(f"Texture buffer not bound: {self._resize_error}")
            self.view.fit_aspect(viewport_w, viewport_h)
            view = self.view.view_array(self.kernel.precision is PrecisionMode.Double)
            self.last_frame_ms = self.dispatcher.run_frame(view)
        except FrameError as e:
            self._store_frame_error(e)
            return False

        self.frames += 1
        if self.on_frame:
            self.on_frame(FrameEvent(texture_id=self.surface.texture_id,
                                     width=self.surface.width,
                                     height=self.surface.height,
                                     elapsed_ms=self.last_frame_ms,
                                     seq=self.frames))
        return True

    def _store_table_error(self, e: FrameError) -> None:
        self._table_error = e
        self._store_frame_error(e)

    def _clear_table_error(self) -> None:
        if self.error is self._table_error:
            self.error = None
        self._table_error = None

    def _store_frame_error(self, e: FrameError) -> None:
        logger.warning("Frame failed: %s", e)
        self.error = e
        self._emit_error(e, recoverable=True)

    def _emit_error(self, e: FractalPipelineError, recoverable: bool) -> None:
        if self.on_error:
            self.on_error(ErrorEvent(message=str(e), recoverable=recoverable, status=e.status))

    # ---------------------------------------------------------------------
    # Presentation queries
    # ---------------------------------------------------------------------

    @property
    def texture_id(self) -> Optional[int]:
        return self.surface.texture_id if self.surface is not None else None

    @property
    def texture_size(self) -> tuple[int, int]:
        if self.surface is None:
            return 0, 0
        return self.surface.width, self.surface.height

    @property
    def iteration_budget(self) -> int:
        if self.colors is not None:
            return self.colors.max_iter
        return max(int(self.settings.max_iter), MIN_ITERATIONS)

    @property
    def palette(self) -> PaletteKind:
        return self.colors.palette if self.colors is not None else self.settings.palette

    @property
    def precision(self) -> str:
        if self.session is None:
            return PrecisionMode.Single.name
        return self.session.precision.name

    @property
    def supersampling_factor(self) -> int:
        return 2 ** self.supersampling

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None
