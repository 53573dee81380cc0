import argparse
import unittest
from unittest import mock

import main
from benchmarking.benchmark import (parse_resolution_list, parse_levels, summarize,
                                    benchmark_combo)
from utils.enums import PaletteKind


class TestMainArgs(unittest.TestCase):

    def test_parse_size(self):
        self.assertEqual(main.parse_size("800x600"), (800, 600))
        self.assertEqual(main.parse_size(" 1920X1080 "), (1920, 1080))
        with self.assertRaises(argparse.ArgumentTypeError):
            main.parse_size("800")
        with self.assertRaises(argparse.ArgumentTypeError):
            main.parse_size("0x600")

    def test_defaults(self):
        settings = main.settings_from_args(main.build_parser().parse_args([]))
        self.assertEqual(settings.max_iter, 500)
        self.assertIs(settings.palette, PaletteKind.POLY)
        self.assertEqual(settings.supersampling, 0)
        self.assertEqual(settings.kernel_name, "mandelbrot")

    def test_custom_kernel_file(self):
        args = main.build_parser().parse_args(
            ["--kernel", "julia.cl", "--kernel-name", "julia", "--palette", "trig",
             "--supersampling", "2", "--max-iter", "1000"])
        settings = main.settings_from_args(args)
        self.assertEqual(settings.kernel_source, "julia.cl")
        self.assertEqual(settings.kernel_name, "julia")
        self.assertIs(settings.palette, PaletteKind.TRIG)
        self.assertEqual(settings.supersampling, 2)
        self.assertEqual(settings.max_iter, 1000)

    def test_rejects_small_budget(self):
        with mock.patch("sys.stderr"), self.assertRaises(SystemExit):
            main.build_parser().parse_args(["--max-iter", "50"])

    def test_rejects_supersampling_out_of_range(self):
        with mock.patch("sys.stderr"), self.assertRaises(SystemExit):
            main.build_parser().parse_args(["--supersampling", "4"])


class TestBenchmarkHelpers(unittest.TestCase):

    def test_resolution_list(self):
        self.assertEqual(parse_resolution_list("800x600, 1280x720"), [(800, 600), (1280, 720)])
        self.assertEqual(parse_resolution_list(""), [(800, 600), (1280, 720), (1920, 1080)])

    def test_levels(self):
        self.assertEqual(parse_levels("0,1,3"), [0, 1, 3])
        self.assertEqual(parse_levels(""), [0])
        with self.assertRaises(ValueError):
            parse_levels("4")

    def test_summarize(self):
        avg, best, fps = summarize([10.0, 20.0])
        self.assertEqual((avg, best), (15.0, 10.0))
        self.assertAlmostEqual(fps, 1000.0 / 15.0)
        self.assertEqual(summarize([]), (0.0, 0.0, 0.0))

    def test_benchmark_combo_stops_on_failure(self):
        pipeline = mock.MagicMock()
        pipeline.set_supersampling.return_value = False
        pipeline.render.side_effect = [True, True, False]
        pipeline.last_frame_ms = 4.0
        self.assertIsNone(benchmark_combo(pipeline, 800, 600, 1, runs=3, warmup=1))
        pipeline.set_supersampling.assert_called_once_with(1)
        pipeline.resize.assert_called_once_with(800, 600)

    def test_benchmark_combo_level_change_resizes_once(self):
        pipeline = mock.MagicMock()
        pipeline.base_width, pipeline.base_height = 640, 480
        pipeline.set_supersampling.side_effect = lambda s: (pipeline.base_width, pipeline.base_height) == (1280, 720)
        pipeline.render.return_value = True
        benchmark_combo(pipeline, 1280, 720, 2, runs=1, warmup=0)
        pipeline.resize.assert_not_called()
        self.assertEqual((pipeline.base_width, pipeline.base_height), (1280, 720))

    def test_benchmark_combo_collects_times(self):
        pipeline = mock.MagicMock()
        pipeline.set_supersampling.return_value = False
        pipeline.render.return_value = True
        pipeline.last_frame_ms = 4.0
        self.assertEqual(benchmark_combo(pipeline, 800, 600, 0, runs=3, warmup=2), [4.0] * 3)
        self.assertEqual(pipeline.render.call_count, 5)


if __name__ == "__main__":
    unittest.main()
