"""批处理协调：扫描、按策略并发生成缩略图、汇总结果。"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Iterator, Optional

from bulk_thumbnails.core.config import JobConfig
from bulk_thumbnails.core.models import Outcome, RunSummary, WorkItem
from bulk_thumbnails.core.progress import ProgressUpdate
from bulk_thumbnails.core.scanner import scan_tree
from bulk_thumbnails.processing.strategies import IOStrategy, build_strategy

LOGGER = logging.getLogger(__name__)


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]


def run_batch(
    config: JobConfig,
    progress_callback: ProgressCallback = None,
    strategy: Optional[IOStrategy] = None,
) -> RunSummary:
    """批量处理入口。

    源目录不合法时 ``SetupError`` 直接向上抛出；单个文件的失败只记录在
    返回的 ``RunSummary`` 中，整个序列总会被处理完。
    """

    items = scan_tree(config.source_root, config.destination_root, config.spec)
    strategy = strategy or build_strategy(config)
    summary = RunSummary()

    LOGGER.info(
        "开始生成缩略图：%s -> %s（%s 模式，%dx%d，%s）",
        config.source_root,
        config.destination_root,
        strategy.name,
        config.spec.target_width,
        config.spec.target_height,
        config.spec.filter_kind.value,
    )

    def handle_outcome(outcome: Outcome) -> None:
        summary.record(outcome)
        if not outcome.succeeded:
            LOGGER.warning(
                "处理失败 [%s] %s: %s",
                outcome.reason.value if outcome.reason else "",
                outcome.item.source_path,
                outcome.message,
            )
        _emit_progress(progress_callback, summary, f"完成 {outcome.item.source_path.name}")

    started = time.perf_counter()
    strategy.execute(_counting(items, summary), config.spec, handle_outcome)
    summary.elapsed_seconds = time.perf_counter() - started

    LOGGER.info(
        "处理完成：扫描 %d，成功 %d，失败 %d，耗时 %.2fs",
        summary.total_scanned,
        summary.succeeded,
        summary.failed,
        summary.elapsed_seconds,
    )
    if not summary.is_consistent:
        LOGGER.error("结果数与扫描数不一致：%d != %d", summary.completed, summary.total_scanned)

    _emit_progress(progress_callback, summary, "处理完成", status="finished")
    return summary


def _counting(items: Iterable[WorkItem], summary: RunSummary) -> Iterator[WorkItem]:
    for item in items:
        summary.register_scanned()
        yield item


def _emit_progress(
    callback: ProgressCallback,
    summary: RunSummary,
    message: Optional[str] = None,
    status: str = "running",
) -> None:
    if not callback:
        return
    callback(
        ProgressUpdate(
            scanned=summary.total_scanned,
            completed=summary.completed,
            message=message,
            status=status,
        )
    )
