from kernel_sources.registry import register_kernel

# Entry point contract:
#   (image, width, height, view[4], max_iterations, colors[max_iterations])
# The launch grid is rounded up to the work-group size, so out-of-range
# work-items must return early.
SRC = r"""
#ifdef USE_DOUBLE
  #pragma OPENCL EXTENSION cl_khr_fp64 : enable
  typedef double real_t;
#else
  typedef float  real_t;
#endif

__kernel void mandelbrot(
    __write_only image2d_t out,
    const uint width, const uint height,
    __global const real_t* view,
    const uint max_iterations,
    __global const float4* colors)
{
    const uint x = get_global_id(0);
    const uint y = get_global_id(1);
    if (x >= width || y >= height) return;

    const real_t min_re = view[0], max_re = view[1];
    const real_t min_im = view[2], max_im = view[3];

    real_t cr = min_re + (max_re - min_re) * ((real_t)x / (real_t)width);
    real_t ci = max_im - (max_im - min_im) * ((real_t)y / (real_t)height);

    real_t zr = 0, zi = 0;
    uint n = 0;
    for (; n < max_iterations; ++n) {
        real_t zr2 = zr * zr;
        real_t zi2 = zi * zi;
        if (zr2 + zi2 > (real_t)4) break;
        zi = (real_t)2 * zr * zi + ci;
        zr = zr2 - zi2 + cr;
    }

    float4 color = n < max_iterations ? colors[n] : (float4)(0.0f, 0.0f, 0.0f, 1.0f);
    write_imagef(out, (int2)(x, y), color);
}
"""

KERNEL_NAME = "mandelbrot"

register_kernel("mandelbrot", SRC, kernel_name=KERNEL_NAME, block=(16, 16))
