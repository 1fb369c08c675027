"""缩略图任务的配置模型。"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from bulk_thumbnails.core.exceptions import InvalidConfigurationError

DEFAULT_WIDTH = 120
DEFAULT_HEIGHT = 150
DEFAULT_EXTENSION = "tiff"
DEFAULT_MAX_IN_FLIGHT = 64
DEFAULT_JPEG_QUALITY = 85


class FilterKind(str, Enum):
    """缩放时使用的重采样核。"""

    NEAREST = "nearest"
    TRIANGLE = "triangle"
    GAUSSIAN = "gaussian"
    CATMULL_ROM = "catmull-rom"
    LANCZOS3 = "lanczos3"

    @classmethod
    def parse(cls, value: str) -> "FilterKind":
        """从命令行字符串解析滤波器名称。"""

        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            allowed = ", ".join(f"'{kind.value}'" for kind in cls)
            raise InvalidConfigurationError(
                f"无法解析滤波器类型: {value}，可选值仅为 {allowed}"
            ) from exc


class OutputFormat(str, Enum):
    """输出容器格式。``source`` 表示沿用源文件扩展名对应的格式。"""

    SOURCE = "source"
    JPEG = "jpeg"
    PNG = "png"
    TIFF = "tiff"
    WEBP = "webp"

    @property
    def suffix(self) -> Optional[str]:
        return _FORMAT_SUFFIXES.get(self)


_FORMAT_SUFFIXES = {
    OutputFormat.JPEG: ".jpg",
    OutputFormat.PNG: ".png",
    OutputFormat.TIFF: ".tiff",
    OutputFormat.WEBP: ".webp",
}


class IOMode(str, Enum):
    """批次的并发执行模型，每次运行只选择一种。"""

    PARALLEL = "parallel"
    ASYNCHRONOUS = "asynchronous"


@dataclass(frozen=True, slots=True)
class ThumbnailSpec:
    """缩略图尺寸与编码配置，构造后只读，可在并发任务之间直接共享。"""

    target_width: int = DEFAULT_WIDTH
    target_height: int = DEFAULT_HEIGHT
    filter_kind: FilterKind = FilterKind.NEAREST
    extension_filter: str = DEFAULT_EXTENSION
    output_format: OutputFormat = OutputFormat.SOURCE
    jpeg_quality: int = DEFAULT_JPEG_QUALITY

    def __post_init__(self) -> None:
        if self.target_width <= 0 or self.target_height <= 0:
            raise InvalidConfigurationError(
                f"缩略图尺寸必须为正整数: {self.target_width}x{self.target_height}"
            )
        if not 1 <= self.jpeg_quality <= 95:
            raise InvalidConfigurationError(f"JPEG 质量必须位于 1~95: {self.jpeg_quality}")

        extension = self.extension_filter.strip().lstrip(".").lower()
        if not extension:
            raise InvalidConfigurationError("扩展名过滤条件不能为空")
        object.__setattr__(self, "extension_filter", extension)
        object.__setattr__(self, "filter_kind", FilterKind.parse(self.filter_kind))
        try:
            object.__setattr__(self, "output_format", OutputFormat(self.output_format))
        except ValueError as exc:
            raise InvalidConfigurationError(f"未知的输出格式: {self.output_format}") from exc


@dataclass(slots=True)
class JobConfig:
    """单次批处理任务的配置集合。"""

    source_root: Path
    destination_root: Path
    spec: ThumbnailSpec = field(default_factory=ThumbnailSpec)
    io_mode: IOMode = IOMode.PARALLEL
    max_workers: Optional[int] = None
    max_in_flight: int = DEFAULT_MAX_IN_FLIGHT

    def __post_init__(self) -> None:
        if self.max_workers is not None and self.max_workers <= 0:
            raise InvalidConfigurationError(f"工作线程数必须大于 0: {self.max_workers}")
        if self.max_in_flight <= 0:
            raise InvalidConfigurationError(f"并发上限必须大于 0: {self.max_in_flight}")

    @property
    def worker_count(self) -> int:
        """实际使用的线程数，默认等于可用 CPU 数。"""

        return self.max_workers or os.cpu_count() or 1
