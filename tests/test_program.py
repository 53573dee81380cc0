import os
import tempfile
import unittest

from backend.errors import ProgramBuildError, KernelResolutionError
from backend.program import ProgramBuilder, prepare_source, DOUBLE_DIRECTIVE
from kernel_sources import load_kernel_source, list_kernels
from utils.enums import PrecisionMode
from tests.support import FakeSession, patched_cl, cl_error


class TestKernelSources(unittest.TestCase):

    def test_builtin_mandelbrot_is_registered(self):
        self.assertIn("mandelbrot", list_kernels())
        source = load_kernel_source("mandelbrot")
        self.assertEqual(source.kernel_name, "mandelbrot")
        self.assertIn("__kernel void mandelbrot", source.src)
        self.assertIn("#ifdef USE_DOUBLE", source.src)

    def test_file_source(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "julia.cl")
            with open(path, "w") as fh:
                fh.write("__kernel void julia() {}")
            source = load_kernel_source(path)
        self.assertIsNone(source.kernel_name)
        self.assertEqual(source.src, "__kernel void julia() {}")

    def test_unknown_identifier(self):
        with self.assertRaises(OSError):
            load_kernel_source("/nonexistent/kernel.cl")


class TestPrepareSource(unittest.TestCase):

    def test_double_prepends_directive(self):
        self.assertEqual(prepare_source("body", True), "#define USE_DOUBLE 1\r\nbody")

    def test_single_is_untouched(self):
        self.assertEqual(prepare_source("body", False), "body")


class TestProgramBuilder(unittest.TestCase):

    def setUp(self):
        self.patcher = patched_cl()
        self.mocks = self.patcher.__enter__()
        self.addCleanup(self.patcher.__exit__, None, None, None)

    def test_build_single(self):
        compiled = ProgramBuilder(FakeSession()).build("mandelbrot")
        src = self.mocks["Program"].call_args[0][1]
        self.assertFalse(src.startswith(DOUBLE_DIRECTIVE))
        self.assertIs(compiled.precision, PrecisionMode.Single)
        self.assertEqual(compiled.kernel_name, "mandelbrot")
        self.mocks["Kernel"].assert_called_once_with(self.mocks["Program"].return_value, "mandelbrot")

    def test_build_double(self):
        session = FakeSession(double_precision=True)
        compiled = ProgramBuilder(session).build("mandelbrot")
        src = self.mocks["Program"].call_args[0][1]
        self.assertTrue(src.startswith(DOUBLE_DIRECTIVE))
        self.assertIs(compiled.precision, PrecisionMode.Double)
        program = self.mocks["Program"].return_value
        program.build.assert_called_once_with(options=[], devices=[session.device])

    def test_build_log_is_carried(self):
        program = self.mocks["Program"].return_value
        program.build.side_effect = cl_error("clBuildProgram failed: BUILD_PROGRAM_FAILURE")
        program.get_build_info.return_value = "<kernel>:3:5: error: use of undeclared identifier 'zz'\n"
        with self.assertRaises(ProgramBuildError) as cm:
            ProgramBuilder(FakeSession()).build("mandelbrot")
        self.assertEqual(cm.exception.build_log, "<kernel>:3:5: error: use of undeclared identifier 'zz'")
        self.assertIn("undeclared identifier", str(cm.exception))
        self.mocks["Kernel"].assert_not_called()

    def test_empty_build_log_falls_back_to_error_text(self):
        program = self.mocks["Program"].return_value
        program.build.side_effect = cl_error("build failed with log")
        program.get_build_info.return_value = ""
        with self.assertRaises(ProgramBuildError) as cm:
            ProgramBuilder(FakeSession()).build("mandelbrot")
        self.assertIn("build failed with log", cm.exception.build_log)

    def test_missing_entry_point(self):
        self.mocks["Kernel"].side_effect = cl_error("CL_INVALID_KERNEL_NAME")
        with self.assertRaises(KernelResolutionError):
            ProgramBuilder(FakeSession()).build("mandelbrot", "julia")

    def test_missing_file(self):
        with self.assertRaises(ProgramBuildError):
            ProgramBuilder(FakeSession()).build("/nonexistent/kernel.cl", "julia")
        self.mocks["Program"].assert_not_called()

    def test_non_utf8_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "binary.cl")
            with open(path, "wb") as fh:
                fh.write(b"\xff\xfe__kernel")
            with self.assertRaises(ProgramBuildError):
                ProgramBuilder(FakeSession()).build(path, "julia")
        self.mocks["Program"].assert_not_called()

    def test_program_creation_failure(self):
        self.mocks["Program"].side_effect = cl_error("CL_INVALID_CONTEXT")
        with self.assertRaises(ProgramBuildError) as cm:
            ProgramBuilder(FakeSession()).build("mandelbrot")
        self.assertIn("CL_INVALID_CONTEXT", str(cm.exception))
        self.mocks["Kernel"].assert_not_called()

    def test_file_without_kernel_name(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "julia.cl")
            with open(path, "w") as fh:
                fh.write("__kernel void julia() {}")
            with self.assertRaises(KernelResolutionError):
                ProgramBuilder(FakeSession()).build(path)
            compiled = ProgramBuilder(FakeSession()).build(path, "julia")
        self.assertEqual(compiled.kernel_name, "julia")


if __name__ == "__main__":
    unittest.main()
