"""重采样能力：把 FilterKind 映射到 Pillow 的缩放滤波器。"""

from __future__ import annotations

from PIL import Image

from bulk_thumbnails.core.config import FilterKind

_RESAMPLING = getattr(Image, "Resampling", Image)

FILTERS = {
    FilterKind.NEAREST: _RESAMPLING.NEAREST,
    FilterKind.TRIANGLE: _RESAMPLING.BILINEAR,
    # Pillow 没有高斯核，HAMMING 是最接近的平滑窗函数。
    FilterKind.GAUSSIAN: _RESAMPLING.HAMMING,
    # Pillow 的 BICUBIC 取 a=-0.5，即 Catmull-Rom 样条。
    FilterKind.CATMULL_ROM: _RESAMPLING.BICUBIC,
    FilterKind.LANCZOS3: _RESAMPLING.LANCZOS,
}


def resample(image: Image.Image, width: int, height: int, filter_kind: FilterKind) -> Image.Image:
    """缩放到精确的 ``width`` x ``height``，不保持宽高比。"""

    return image.resize((width, height), FILTERS[filter_kind])
