"""文件扫描与筛选逻辑。"""

from __future__ import annotations

import logging
import stat
from itertools import count
from pathlib import Path
from typing import Iterator, Optional

from bulk_thumbnails.core.config import ThumbnailSpec
from bulk_thumbnails.core.exceptions import SetupError
from bulk_thumbnails.core.models import WorkItem

LOGGER = logging.getLogger(__name__)


def is_eligible(path: Path, extension_filter: str) -> bool:
    """判断路径是否为扩展名匹配的普通文件（大小写不敏感）。"""

    if path.suffix.lstrip(".").lower() != extension_filter.lstrip(".").lower():
        return False

    try:
        # 跟随文件符号链接，但链接到目录或特殊文件的不算。
        mode = path.stat().st_mode
    except OSError:
        return False
    return stat.S_ISREG(mode)


def mirror_destination(relative: Path, destination_root: Path, spec: ThumbnailSpec) -> Path:
    """将相对路径映射到目标根目录下，必要时替换扩展名。"""

    if relative.is_absolute() or ".." in relative.parts:
        raise SetupError(f"相对路径越出源目录: {relative}")

    destination = destination_root / relative
    suffix = spec.output_format.suffix
    if suffix is not None:
        destination = destination.with_suffix(suffix)
    return destination


def scan_tree(source_root: Path, destination_root: Path, spec: ThumbnailSpec) -> Iterator[WorkItem]:
    """扫描源目录，惰性产出 WorkItem。

    源目录在调用时立即校验，不合法时抛出 ``SetupError``，不会产出任何条目。
    返回的迭代器只能消费一次。
    """

    if not source_root.exists():
        raise SetupError(f"源目录不存在: {source_root}")
    if not source_root.is_dir():
        raise SetupError(f"源路径不是目录: {source_root}")

    resolved_source = source_root.resolve()
    resolved_destination = destination_root.resolve()
    if resolved_destination == resolved_source:
        raise SetupError(f"目标目录不能与源目录相同: {destination_root}")

    excluded: Optional[Path] = None
    if resolved_destination.is_relative_to(resolved_source):
        # 目标目录位于源目录内部时跳过，避免扫描到刚写出的缩略图。
        excluded = resolved_destination
        LOGGER.info("目标目录位于源目录内，扫描时跳过: %s", excluded)

    return _walk(resolved_source, resolved_source, resolved_destination, spec, excluded)


def _walk(
    directory: Path,
    source_root: Path,
    destination_root: Path,
    spec: ThumbnailSpec,
    excluded: Optional[Path],
) -> Iterator[WorkItem]:
    """深度优先遍历，同一目录内按名称排序。

    无法读取或无法访问的目录与条目记录警告后跳过，其余部分照常扫描。
    """

    try:
        entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
    except OSError as exc:
        LOGGER.warning("无法读取目录，已跳过 %s: %s", directory, exc)
        return

    # 同一目录下已分配的目标文件名（小写），用于避免替换扩展名后相互覆盖。
    issued: set[str] = set()

    for entry in entries:
        try:
            if entry.is_symlink() and entry.is_dir():
                LOGGER.debug("跳过目录符号链接: %s", entry)
                continue
            is_directory = entry.is_dir()
        except OSError as exc:
            LOGGER.warning("无法访问条目，已跳过 %s: %s", entry, exc)
            continue

        if is_directory:
            if excluded is not None and entry == excluded:
                continue
            yield from _walk(entry, source_root, destination_root, spec, excluded)
            continue

        if not is_eligible(entry, spec.extension_filter):
            continue

        destination = mirror_destination(entry.relative_to(source_root), destination_root, spec)
        if destination.name.lower() in issued:
            renamed = _generate_renamed_path(destination, issued)
            LOGGER.warning("目标文件名冲突: %s -> 重命名为 %s", entry, renamed.name)
            destination = renamed
        issued.add(destination.name.lower())

        yield WorkItem(source_path=entry, destination_path=destination)


def _generate_renamed_path(destination: Path, issued: set[str]) -> Path:
    """为冲突的目标生成 ``stem_N`` 形式的新文件名。"""

    stem = destination.stem
    suffix = destination.suffix

    for idx in count(1):
        candidate = destination.with_name(f"{stem}_{idx}{suffix}")
        if candidate.name.lower() not in issued:
            return candidate

    # 理论上不会执行到此处
    return destination
