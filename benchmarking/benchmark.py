"""
Benchmark the OpenCL/OpenGL interop pipeline on an offscreen GL context.

Usage examples:
  python -m benchmarking.benchmark --res 800x600,1280x720 --max-iter 1000 --runs 10

  python -m benchmarking.benchmark --supersampling 0,1,2 --palette trig --csv ss.csv
"""

import os
import csv
import sys
import argparse
import platform
from typing import List, Tuple, Optional

from fractals.base import RenderSettings, MAX_SUPERSAMPLING
from rendering.service import FractalPipeline
from utils.enums import PaletteKind

# --- Helpers -----------------------------------------------------------------

def parse_resolution_list(res_str: str) -> List[Tuple[int, int]]:
    """
    Parse resolutions like "800x600,1280x720".
    """
    if not res_str:
        return [(800, 600), (1280, 720), (1920, 1080)]
    out: List[Tuple[int, int]] = []
    for token in res_str.split(','):
        token = token.strip().lower()
        if not token:
            continue
        w, h = token.split('x')
        out.append((int(w), int(h)))
    return out

def parse_levels(levels: str) -> List[int]:
    """
    Parse supersampling exponents like "0,1,2"; each must be within 0..3.
    """
    out = []
    for token in levels.split(','):
        token = token.strip()
        if not token:
            continue
        s = int(token)
        if not 0 <= s <= MAX_SUPERSAMPLING:
            raise ValueError(f"Supersampling level must be within 0..{MAX_SUPERSAMPLING}: {s}")
        out.append(s)
    return out or [0]

def summarize(times_ms: List[float]) -> Tuple[float, float, float]:
    """
    Returns (avg_ms, min_ms, fps) for a list of frame times.
    """
    if not times_ms:
        return 0.0, 0.0, 0.0
    avg = sum(times_ms) / len(times_ms)
    fps = 1000.0 / avg if avg > 0 else 0.0
    return avg, min(times_ms), fps

# --- Offscreen context -------------------------------------------------------

def make_offscreen_context():
    """
    Create and make current a compatibility-profile GL context without a window.
    Returns (app, context, surface); keep them alive for the whole run.
    """
    from PySide6.QtGui import QGuiApplication, QOffscreenSurface, QOpenGLContext, QSurfaceFormat

    app = QGuiApplication.instance() or QGuiApplication(sys.argv[:1])
    fmt = QSurfaceFormat()
    fmt.setProfile(QSurfaceFormat.OpenGLContextProfile.CompatibilityProfile)

    ctx = QOpenGLContext()
    ctx.setFormat(fmt)
    if not ctx.create():
        raise RuntimeError("Failed to create an OpenGL context")

    surface = QOffscreenSurface()
    surface.setFormat(ctx.format())
    surface.create()
    if not ctx.makeCurrent(surface):
        raise RuntimeError("Failed to make the OpenGL context current")
    return app, ctx, surface

# --- Benchmark core ----------------------------------------------------------

def benchmark_combo(pipeline: FractalPipeline,
                    width: int,
                    height: int,
                    supersampling: int,
                    runs: int,
                    warmup: int = 1) -> Optional[List[float]]:
    """
    Runs warmups (not timed), then 'runs' timed frames.
    Returns the dispatcher frame times in ms, or None if a frame failed.
    """
    # One allocation per combination: a level change resizes at the new base size
    pipeline.base_width, pipeline.base_height = int(width), int(height)
    if not pipeline.set_supersampling(supersampling):
        pipeline.resize(width, height)

    for _ in range(max(0, warmup)):
        if not pipeline.render(width, height):
            return None

    times = []
    for _ in range(runs):
        if not pipeline.render(width, height):
            return None
        times.append(pipeline.last_frame_ms)
    return times

# --- CLI ---------------------------------------------------------------------

def main():
    p = argparse.ArgumentParser(description="Benchmark the interop fractal pipeline.")
    p.add_argument("--res", type=str, default="800x600,1280x720,1920x1080",
                   help="Comma separated WxH list")
    p.add_argument("--supersampling", type=str, default="0",
                   help="Comma separated supersampling exponents (0..3)")
    p.add_argument("--max-iter", type=int, default=500)
    p.add_argument("--palette", type=str, default="poly", choices=["poly", "trig"])
    p.add_argument("--kernel", type=str, default="mandelbrot")
    p.add_argument("--runs", type=int, default=5)
    p.add_argument("--warmup", type=int, default=1)
    p.add_argument("--csv", type=str, default="benchmark_results.csv")
    args = p.parse_args()

    resolutions = parse_resolution_list(args.res)
    levels = parse_levels(args.supersampling)

    _keepalive = make_offscreen_context()

    settings = RenderSettings(max_iter=args.max_iter,
                              palette=PaletteKind[args.palette.upper()],
                              kernel_source=args.kernel)
    pipeline = FractalPipeline(settings)
    if not pipeline.initialize():
        print(f"[ERR] Pipeline init failed: {pipeline.init_error}")
        return 1

    cpu_info = platform.processor() or platform.machine()
    device = pipeline.session.selection.info
    print("=== Hardware Summary ===")
    print("CPU:", cpu_info)
    print("Device:", device.name, f"({pipeline.precision} precision)")
    print()

    if os.path.exists(args.csv):
        os.remove(args.csv)
    try:
        with open(args.csv, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["Hardware Summary"])
            writer.writerow(["CPU", cpu_info])
            writer.writerow(["Device", device.name])
            writer.writerow(["Precision", pipeline.precision])
            writer.writerow([])
            writer.writerow(["Resolution", "Supersampling", "Avg (ms)", "Min (ms)", "FPS"])

            for (w, h) in resolutions:
                print(f"=== {w}x{h} ===")
                for s in levels:
                    times = benchmark_combo(pipeline, w, h, s, args.runs, args.warmup)
                    label = f"{2 ** s}x"
                    if times is None:
                        print(f"{label:>6}  FAIL: {pipeline.error_message}")
                        writer.writerow([f"{w}x{h}", label, "n/a", "n/a", "n/a"])
                        continue
                    avg, best, fps = summarize(times)
                    print(f"{label:>6}  avg={avg:.2f}ms  min={best:.2f}ms  fps={fps:.1f}")
                    writer.writerow([f"{w}x{h}", label, f"{avg:.3f}", f"{best:.3f}", f"{fps:.2f}"])
                print()
    finally:
        pipeline.close()

    print(f"Benchmark results saved to {args.csv}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
