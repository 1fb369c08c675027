"""并发执行策略：有界线程池（同步 I/O）与 asyncio 协作调度（异步 I/O）。

两种策略都以惰性方式消费 WorkItem 序列，限制同时在途的条目数，
并保证 ``execute`` 返回前每个已派发条目都已产生结果。
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ALL_COMPLETED, FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Iterable, Iterator

from bulk_thumbnails.core.config import IOMode, JobConfig, ThumbnailSpec
from bulk_thumbnails.core.models import FailureReason, Outcome, WorkItem
from bulk_thumbnails.core.output_manager import ImageWriteError
from bulk_thumbnails.processing.image_loader import ImageDecodeError, read_source
from bulk_thumbnails.processing.transcoder import failure_from, process_item, render_thumbnail, write_thumbnail

LOGGER = logging.getLogger(__name__)

OutcomeHandler = Callable[[Outcome], None]


class IOStrategy(ABC):
    """把 WorkItem 序列转换为并发的处理调用。"""

    name: str = ""

    @abstractmethod
    def execute(self, items: Iterable[WorkItem], spec: ThumbnailSpec, on_outcome: OutcomeHandler) -> None:
        """处理全部条目，每个条目恰好回调一次 ``on_outcome``。"""


class ParallelStrategy(IOStrategy):
    """固定大小的线程池，每个线程依次阻塞执行单个条目的各个阶段。"""

    name = "parallel"

    def __init__(self, max_workers: int) -> None:
        self.max_workers = max_workers

    def execute(self, items: Iterable[WorkItem], spec: ThumbnailSpec, on_outcome: OutcomeHandler) -> None:
        # 运行中的条目之外最多再排队 max_workers 个，避免一次性展开整个扫描结果。
        limit = self.max_workers * 2
        pending: dict[Future[Outcome], WorkItem] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="thumb-worker") as executor:
            for item in items:
                pending[executor.submit(process_item, item, spec)] = item
                if len(pending) >= limit:
                    _drain(pending, on_outcome, FIRST_COMPLETED)
            while pending:
                _drain(pending, on_outcome, ALL_COMPLETED)


class AsyncStrategy(IOStrategy):
    """单个 asyncio 事件循环调度大量在途条目。

    读写在默认执行器上等待，解码/缩放/编码交给独立的 CPU 线程池，
    事件循环本身不执行阻塞操作。
    """

    name = "asynchronous"

    def __init__(self, max_in_flight: int, cpu_workers: int) -> None:
        self.max_in_flight = max_in_flight
        self.cpu_workers = cpu_workers

    def execute(self, items: Iterable[WorkItem], spec: ThumbnailSpec, on_outcome: OutcomeHandler) -> None:
        asyncio.run(self._execute(iter(items), spec, on_outcome))

    async def _execute(self, items: Iterator[WorkItem], spec: ThumbnailSpec, on_outcome: OutcomeHandler) -> None:
        loop = asyncio.get_running_loop()
        limiter = asyncio.Semaphore(self.max_in_flight)
        in_flight: set[asyncio.Task[None]] = set()

        with ThreadPoolExecutor(max_workers=self.cpu_workers, thread_name_prefix="thumb-cpu") as cpu_pool:
            try:
                while True:
                    await limiter.acquire()
                    # 目录遍历也是阻塞 I/O，放到执行器里推进扫描。
                    item = await loop.run_in_executor(None, next, items, None)
                    if item is None:
                        limiter.release()
                        break
                    task = asyncio.create_task(self._run_one(item, spec, cpu_pool, limiter, on_outcome))
                    in_flight.add(task)
                    task.add_done_callback(in_flight.discard)
            finally:
                if in_flight:
                    await asyncio.gather(*in_flight)

    async def _run_one(
        self,
        item: WorkItem,
        spec: ThumbnailSpec,
        cpu_pool: ThreadPoolExecutor,
        limiter: asyncio.Semaphore,
        on_outcome: OutcomeHandler,
    ) -> None:
        try:
            outcome = await _process_async(item, spec, cpu_pool)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("任务执行异常：%s", item.source_path)
            outcome = Outcome.failure(item, FailureReason.WORKER_ERROR, str(exc))
        finally:
            limiter.release()
        on_outcome(outcome)


async def _process_async(item: WorkItem, spec: ThumbnailSpec, cpu_pool: ThreadPoolExecutor) -> Outcome:
    loop = asyncio.get_running_loop()
    try:
        data = await loop.run_in_executor(None, read_source, item.source_path)
        payload = await loop.run_in_executor(cpu_pool, render_thumbnail, data, spec, item)
        await loop.run_in_executor(None, write_thumbnail, item.destination_path, payload)
    except (ImageDecodeError, ImageWriteError) as exc:
        return failure_from(item, exc)
    return Outcome.success(item)


def build_strategy(config: JobConfig) -> IOStrategy:
    """按配置选择本次运行使用的策略。"""

    if config.io_mode is IOMode.ASYNCHRONOUS:
        return AsyncStrategy(max_in_flight=config.max_in_flight, cpu_workers=config.worker_count)
    return ParallelStrategy(max_workers=config.worker_count)


def _drain(pending: dict[Future[Outcome], WorkItem], on_outcome: OutcomeHandler, return_when: str) -> None:
    done, _ = wait(pending, return_when=return_when)
    for future in done:
        item = pending.pop(future)
        try:
            outcome = future.result()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("任务执行异常：%s", item.source_path)
            outcome = Outcome.failure(item, FailureReason.WORKER_ERROR, str(exc))
        on_outcome(outcome)
