"""进度更新的数据模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class ProgressUpdate:
    """批处理过程中的进度信息。

    扫描是惰性的，``scanned`` 会随着遍历不断增长，直到 ``status`` 变为 ``finished``。
    """

    scanned: int
    completed: int
    message: Optional[str] = None
    status: str = "running"
