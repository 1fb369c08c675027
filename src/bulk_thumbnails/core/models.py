"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass(frozen=True, slots=True)
class WorkItem:
    """一个源文件到目标缩略图的处理单元。"""

    source_path: Path
    destination_path: Path


class FailureReason(str, Enum):
    """单个文件失败的原因分类。"""

    DECODE_ERROR = "decode-error"
    WRITE_ERROR = "write-error"
    WORKER_ERROR = "worker-error"


@dataclass(frozen=True, slots=True)
class Outcome:
    """记录单个 WorkItem 的终态结果。"""

    item: WorkItem
    reason: Optional[FailureReason] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, item: WorkItem) -> "Outcome":
        return cls(item=item)

    @classmethod
    def failure(cls, item: WorkItem, reason: FailureReason, message: str) -> "Outcome":
        return cls(item=item, reason=reason, message=message)

    @property
    def succeeded(self) -> bool:
        return self.reason is None


@dataclass(frozen=True, slots=True)
class FailureRecord:
    """汇总报告中的一条失败记录。"""

    source_path: Path
    reason: FailureReason
    message: str


@dataclass(slots=True)
class RunSummary:
    """批处理的汇总结果，按完成顺序累积，不依赖扫描顺序。"""

    total_scanned: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: list[FailureRecord] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def register_scanned(self) -> None:
        self.total_scanned += 1

    def record(self, outcome: Outcome) -> None:
        """登记一个终态结果。"""

        if outcome.succeeded:
            self.succeeded += 1
            return

        self.failed += 1
        assert outcome.reason is not None
        self.failures.append(
            FailureRecord(
                source_path=outcome.item.source_path,
                reason=outcome.reason,
                message=outcome.message or "",
            )
        )

    @property
    def completed(self) -> int:
        return self.succeeded + self.failed

    @property
    def is_consistent(self) -> bool:
        """所有扫描到的条目是否都已得到结果。"""

        return self.completed == self.total_scanned

    @property
    def throughput(self) -> float:
        """每秒完成的条目数。"""

        if self.elapsed_seconds <= 0:
            return 0.0
        return self.completed / self.elapsed_seconds
