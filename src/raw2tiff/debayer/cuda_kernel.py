from __future__ import annotations


KERNEL_NAME = "debayer_rggb_bilinear_srgb"

# Block edge; the grid covers the output in BLOCK x BLOCK tiles.
BLOCK = 32

# fmad is disabled so the float math rounds like the numpy reference.
COMPILE_OPTIONS = ("--std=c++11", "--fmad=false")

KERNEL_SOURCE = r"""
__device__ __forceinline__ int mirror(int i, int n)
{
    if (i < 0) return -i;
    if (i >= n) return 2 * n - 2 - i;
    return i;
}

__device__ __forceinline__ int sample(const unsigned short* bayer, int x, int y, int width, int height)
{
    return (int)bayer[mirror(y, height) * width + mirror(x, width)];
}

extern "C" __global__
void debayer_rggb_bilinear_srgb(
    const unsigned short* __restrict__ bayer,
    float* __restrict__ rgb,
    const int width,
    const int height,
    const float wb_r,
    const float wb_g,
    const float wb_b,
    const float black_r,
    const float black_g,
    const float black_b,
    const float range,
    const float* __restrict__ m)
{
    const int x = blockIdx.x * blockDim.x + threadIdx.x;
    const int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x >= width || y >= height) return;

    const int c = sample(bayer, x, y, width, height);
    const int n = sample(bayer, x, y - 1, width, height);
    const int s = sample(bayer, x, y + 1, width, height);
    const int w = sample(bayer, x - 1, y, width, height);
    const int e = sample(bayer, x + 1, y, width, height);

    const bool even_row = (y & 1) == 0;
    const bool even_col = (x & 1) == 0;

    int r, g, b;
    if (even_row && even_col) {
        const int diag = sample(bayer, x - 1, y - 1, width, height) + sample(bayer, x + 1, y - 1, width, height)
                       + sample(bayer, x - 1, y + 1, width, height) + sample(bayer, x + 1, y + 1, width, height);
        r = c;
        g = (n + s + w + e) / 4;
        b = diag / 4;
    } else if (even_row) {
        r = (w + e) / 2;
        g = c;
        b = (n + s) / 2;
    } else if (even_col) {
        r = (n + s) / 2;
        g = c;
        b = (w + e) / 2;
    } else {
        const int diag = sample(bayer, x - 1, y - 1, width, height) + sample(bayer, x + 1, y - 1, width, height)
                       + sample(bayer, x - 1, y + 1, width, height) + sample(bayer, x + 1, y + 1, width, height);
        r = diag / 4;
        g = (n + s + w + e) / 4;
        b = c;
    }

    const float lr = fmaxf((float)r - black_r, 0.0f) / range * wb_r;
    const float lg = fmaxf((float)g - black_g, 0.0f) / range * wb_g;
    const float lb = fmaxf((float)b - black_b, 0.0f) / range * wb_b;

    const int o = (y * width + x) * 3;
    rgb[o + 0] = m[0] * lr + m[1] * lg + m[2] * lb + m[3];
    rgb[o + 1] = m[4] * lr + m[5] * lg + m[6] * lb + m[7];
    rgb[o + 2] = m[8] * lr + m[9] * lg + m[10] * lb + m[11];
}
"""
