"""单个缩略图的处理单元：读取、解码、缩放、编码、写出。"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from PIL import Image

from bulk_thumbnails.core.config import ThumbnailSpec
from bulk_thumbnails.core.models import FailureReason, Outcome, WorkItem
from bulk_thumbnails.core.output_manager import ImageWriteError, encode_image, resolve_format, write_bytes
from bulk_thumbnails.processing.image_loader import ImageDecodeError, decode_image, read_source
from bulk_thumbnails.processing.resampler import resample


def render_thumbnail(data: bytes, spec: ThumbnailSpec, item: WorkItem) -> bytes:
    """CPU 阶段：解码源字节、重采样并编码为目标格式。

    解码失败抛出 ``ImageDecodeError``，编码失败抛出 ``ImageWriteError``。
    """

    image: Optional[Image.Image] = None
    resized: Optional[Image.Image] = None
    try:
        image, source_format = decode_image(data, name=str(item.source_path))
        resized = resample(image, spec.target_width, spec.target_height, spec.filter_kind)
        image_format = resolve_format(item.destination_path, spec, source_format)
        return encode_image(resized, image_format, spec)
    finally:
        _close_if_needed(image, resized)


def write_thumbnail(destination: Path, payload: bytes) -> None:
    """I/O 阶段：写出编码结果，目录按需创建。"""

    write_bytes(destination, payload)


def process_item(item: WorkItem, spec: ThumbnailSpec) -> Outcome:
    """同步执行完整流程，任何单文件错误都转换为 Failure 结果。"""

    try:
        data = read_source(item.source_path)
        payload = render_thumbnail(data, spec, item)
        write_thumbnail(item.destination_path, payload)
    except (ImageDecodeError, ImageWriteError) as exc:
        return failure_from(item, exc)

    return Outcome.success(item)


def failure_from(item: WorkItem, exc: Exception) -> Outcome:
    """把阶段异常映射为对应原因的 Failure。"""

    if isinstance(exc, ImageDecodeError):
        reason = FailureReason.DECODE_ERROR
    elif isinstance(exc, ImageWriteError):
        reason = FailureReason.WRITE_ERROR
    else:
        reason = FailureReason.WORKER_ERROR
    return Outcome.failure(item, reason, str(exc))


def _close_if_needed(*images: Optional[Image.Image]) -> None:
    for img in images:
        if img is not None:
            img.close()
