"""缩略图编码与输出写入模块。"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from PIL import Image

from bulk_thumbnails.core.config import OutputFormat, ThumbnailSpec
from bulk_thumbnails.core.exceptions import ThumbnailError

LOGGER = logging.getLogger(__name__)

_PILLOW_FORMATS = {
    OutputFormat.JPEG: "JPEG",
    OutputFormat.PNG: "PNG",
    OutputFormat.TIFF: "TIFF",
    OutputFormat.WEBP: "WEBP",
}

# 这些容器不支持透明通道。
_OPAQUE_FORMATS = {"JPEG", "BMP"}


class ImageWriteError(ThumbnailError):
    """输出写入失败。"""


def resolve_format(destination: Path, spec: ThumbnailSpec, fallback: Optional[str]) -> str:
    """确定输出使用的 Pillow 格式名称。

    ``source`` 模式下按目标扩展名推断，无法推断时退回到解码得到的原始格式。
    """

    if spec.output_format is not OutputFormat.SOURCE:
        return _PILLOW_FORMATS[spec.output_format]

    image_format = Image.registered_extensions().get(destination.suffix.lower())
    if image_format:
        return image_format
    if fallback:
        return fallback
    raise ImageWriteError(f"无法确定输出格式: {destination.suffix}")


def encode_image(image: Image.Image, image_format: str, spec: ThumbnailSpec) -> bytes:
    """将 PIL Image 编码为指定格式的字节串。"""

    save_params: dict[str, object] = {}
    image_to_save = image
    if image_format in _OPAQUE_FORMATS:
        if image.mode != "RGB":
            image_to_save = image.convert("RGB")
        if image_format == "JPEG":
            save_params.update(quality=spec.jpeg_quality, optimize=True)
    elif image_format == "WEBP":
        save_params.update(quality=spec.jpeg_quality)

    buffer = io.BytesIO()
    try:
        image_to_save.save(buffer, format=image_format, **save_params)
    except (OSError, ValueError, KeyError) as exc:
        raise ImageWriteError(f"无法编码为 {image_format}: {exc}") from exc
    finally:
        if image_to_save is not image:
            image_to_save.close()
    return buffer.getvalue()


def write_bytes(destination: Path, payload: bytes) -> None:
    """把编码后的缩略图写入目标路径，已存在时覆盖。

    目录按需创建，并发重复创建不视为错误；先写临时文件再原子替换，
    中断时不会留下写了一半的目标文件。
    """

    tmp_name: Optional[str] = None
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
        )
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
        os.replace(tmp_name, destination)
        tmp_name = None
    except OSError as exc:
        raise ImageWriteError(f"写入文件失败: {destination}: {exc}") from exc
    finally:
        if tmp_name is not None:
            _discard(Path(tmp_name))


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        LOGGER.debug("无法删除临时文件 %s: %s", path, exc)
