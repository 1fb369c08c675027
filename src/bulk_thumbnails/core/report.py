"""报告生成工具。"""

from __future__ import annotations

import csv
from pathlib import Path

from bulk_thumbnails.core.models import RunSummary

HEADER = ["source_path", "reason", "message"]


def write_csv_report(summary: RunSummary, report_path: Path) -> Path:
    """将失败记录写入 CSV 报告。"""

    report_path.parent.mkdir(parents=True, exist_ok=True)
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for record in summary.failures:
            writer.writerow([str(record.source_path), record.reason.value, record.message])
    return report_path


def format_summary(summary: RunSummary) -> list[str]:
    """生成面向终端的汇总文本行。"""

    lines = [
        f"扫描 {summary.total_scanned} 个文件：成功 {summary.succeeded}，失败 {summary.failed}。",
        f"耗时 {summary.elapsed_seconds:.2f} 秒，吞吐 {summary.throughput:.1f} 张/秒。",
    ]
    for record in summary.failures:
        lines.append(f"  [{record.reason.value}] {record.source_path}: {record.message}")
    return lines
