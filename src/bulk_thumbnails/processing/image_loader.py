"""图片读取与解码实现。"""

from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from bulk_thumbnails.core.exceptions import ThumbnailError

LOGGER = logging.getLogger(__name__)

# 可直接参与重采样与编码的模式，其他模式统一归一化。
_NATIVE_MODES = {"RGB", "RGBA", "L", "LA"}

_DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    ValueError,
    EOFError,
    SyntaxError,
)


class ImageDecodeError(ThumbnailError):
    """图片读取或解码失败。"""


def read_source(path: Path) -> bytes:
    """读取源文件的全部字节。无法读取同样视为解码失败。"""

    try:
        return path.read_bytes()
    except OSError as exc:
        raise ImageDecodeError(f"无法读取源文件: {path}: {exc}") from exc


def decode_image(data: bytes, *, name: str = "<memory>") -> tuple[Image.Image, str | None]:
    """解码图片字节并执行 EXIF 旋转与模式归一化。

    返回新的 Image 对象与原始容器格式，调用者负责关闭。
    """

    if not data:
        raise ImageDecodeError(f"空文件无法解码: {name}")

    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format
            img.load()

            # EXIF Orientation 校正，总是返回新的 Image
            transposed = ImageOps.exif_transpose(img)

        if transposed.mode in _NATIVE_MODES:
            return transposed, image_format

        try:
            return _normalize_mode(transposed), image_format
        finally:
            transposed.close()
    except _DECODE_ERRORS as exc:
        LOGGER.debug("无法识别图像文件 %s: %s", name, exc)
        raise ImageDecodeError(f"无法解码图像: {name}: {exc}") from exc


def _normalize_mode(img: Image.Image) -> Image.Image:
    """将调色板、CMYK、16 位等模式转换为可重采样的模式。"""

    if img.mode == "P" and "transparency" in img.info:
        return img.convert("RGBA")

    if img.mode in {"1", "I;16", "I;16B", "I;16L", "I"}:
        return img.convert("L") if img.mode == "1" else _convert_high_depth(img)

    # P、CMYK、YCbCr 等直接转换
    return img.convert("RGB")


def _convert_high_depth(img: Image.Image) -> Image.Image:
    """把 16/32 位灰度缩放到 8 位。"""

    with img.convert("I") as widened, widened.point(lambda value: value * (1 / 256)) as scaled:
        return scaled.convert("L")
