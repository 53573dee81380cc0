"""
Real-time OpenCL/OpenGL fractal viewer.

Usage examples:
  python main.py
  python main.py --max-iter 1000 --palette trig --supersampling 1
  python main.py --kernel ./kernels/julia.cl --kernel-name julia
  python main.py --list-devices

Controls: drag to pan, wheel to zoom, +/- iterations, a/d supersampling,
c palette, Alt+Return fullscreen, Esc quit.
"""
import sys
import logging
import argparse
from typing import List, Optional, Tuple

from coloring.palettes import DEFAULT_ITERATIONS, MIN_ITERATIONS
from devices.manager import DeviceManager
from fractals.base import RenderSettings, MAX_SUPERSAMPLING
from kernel_sources import list_kernels
from utils.enums import PaletteKind

logger = logging.getLogger(__name__)


def parse_size(token: str) -> Tuple[int, int]:
    """
    Parse a window size like "800x600".
    """
    token = token.strip().lower().replace(" ", "")
    try:
        w, h = token.split("x")
        size = int(w), int(h)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid size '{token}', expected WxH")
    if size[0] <= 0 or size[1] <= 0:
        raise argparse.ArgumentTypeError(f"Size must be positive, got '{token}'")
    return size


def iteration_budget(token: str) -> int:
    value = int(token)
    if value < MIN_ITERATIONS:
        raise argparse.ArgumentTypeError(f"--max-iter must be at least {MIN_ITERATIONS}")
    return value


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="OpenCL/OpenGL interop fractal viewer")
    ap.add_argument("--kernel", default="mandelbrot",
                    help=f"Registered kernel ({', '.join(list_kernels())}) or path to a .cl file")
    ap.add_argument("--kernel-name", default=None,
                    help="Kernel entry point (defaults to the registered name)")
    ap.add_argument("--max-iter", type=iteration_budget, default=DEFAULT_ITERATIONS)
    ap.add_argument("--palette", choices=[p.name.lower() for p in PaletteKind], default="poly")
    ap.add_argument("--supersampling", type=int, choices=range(MAX_SUPERSAMPLING + 1), default=0,
                    help="Supersampling exponent s; textures are 2**s times the window size")
    ap.add_argument("--size", type=parse_size, default=(800, 600), help="Initial window size WxH")
    ap.add_argument("--log-level", default="INFO",
                    choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    ap.add_argument("--list-devices", action="store_true",
                    help="Print OpenCL devices and exit")
    return ap


def settings_from_args(args: argparse.Namespace) -> RenderSettings:
    kernel_name = args.kernel_name
    if kernel_name is None and args.kernel.lower() in list_kernels():
        kernel_name = args.kernel.lower()
    return RenderSettings(
        max_iter=args.max_iter,
        palette=PaletteKind[args.palette.upper()],
        supersampling=args.supersampling,
        kernel_source=args.kernel,
        kernel_name=kernel_name,
    )


def print_devices() -> None:
    devs = DeviceManager.list()
    if not devs:
        print("No OpenCL devices found.")
        return
    print("Available devices:")
    for d in devs:
        caps = []
        if d.is_gpu:
            caps.append("GPU")
        if d.supports_interop:
            caps.append("GL sharing")
        if d.supports_double:
            caps.append("fp64")
        print(f"{d.platform_id}.{d.device_id}: {d.name} [{d.vendor}] {d.memory_total_mb} MB ({', '.join(caps)})")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.list_devices:
        print_devices()
        return 0

    settings = settings_from_args(args)

    from PySide6.QtGui import QSurfaceFormat
    from PySide6.QtWidgets import QApplication
    from ui.view import FractalGLView

    # The fullscreen quad is drawn with the fixed-function pipeline
    fmt = QSurfaceFormat()
    fmt.setProfile(QSurfaceFormat.OpenGLContextProfile.CompatibilityProfile)
    QSurfaceFormat.setDefaultFormat(fmt)

    app = QApplication(sys.argv[:1])
    viewer = FractalGLView(settings)
    viewer.resize(*args.size)
    viewer.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
