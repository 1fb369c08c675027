"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from bulk_thumbnails.core.config import (
    DEFAULT_EXTENSION,
    DEFAULT_HEIGHT,
    DEFAULT_JPEG_QUALITY,
    DEFAULT_MAX_IN_FLIGHT,
    DEFAULT_WIDTH,
    FilterKind,
    IOMode,
    JobConfig,
    OutputFormat,
    ThumbnailSpec,
)
from bulk_thumbnails.core.exceptions import InvalidConfigurationError, SetupError
from bulk_thumbnails.core.progress import ProgressUpdate
from bulk_thumbnails.core.report import format_summary, write_csv_report
from bulk_thumbnails.processing.pipeline import run_batch
from bulk_thumbnails.utils.logging import setup_logging

EXIT_FAILURES = 1
EXIT_SETUP = 2

app = typer.Typer(help="批量生成缩略图，尽可能压榨单机吞吐。")


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if task_id is None:
            task_id = progress.add_task("生成缩略图", total=None)
        # 扫描是惰性的，总数随扫描增长，结束时才确定。
        total = update.scanned if update.status == "finished" else None
        progress.update(task_id, completed=update.completed, total=total)

    return callback


@app.command("run")
def run_cli(  # noqa: PLR0913
    src: Path = typer.Argument(..., help="源图片目录"),
    dst: Path = typer.Argument(..., help="缩略图输出目录"),
    width: int = typer.Option(DEFAULT_WIDTH, "--width", "-w", help="缩略图宽度"),
    height: int = typer.Option(DEFAULT_HEIGHT, "--height", "-h", help="缩略图高度"),
    filter_kind: FilterKind = typer.Option(
        FilterKind.NEAREST,
        "--filter",
        "-f",
        case_sensitive=False,
        help="重采样滤波器，nearest 最快",
    ),
    extension: str = typer.Option(DEFAULT_EXTENSION, "--extension", "-e", help="只处理该扩展名的文件"),
    asynchronous: bool = typer.Option(False, "--asynchronous", "-a", help="使用异步 I/O 调度"),
    workers: Optional[int] = typer.Option(None, "--workers", help="线程池大小，默认等于 CPU 数"),
    max_in_flight: int = typer.Option(DEFAULT_MAX_IN_FLIGHT, "--max-in-flight", help="异步模式下同时在途的文件数"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.SOURCE, "--output-format", case_sensitive=False, help="输出格式，source 表示与源文件一致"
    ),
    jpeg_quality: int = typer.Option(DEFAULT_JPEG_QUALITY, "--jpeg-quality", help="JPEG/WebP 编码质量"),
    report: Optional[Path] = typer.Option(None, "--report", help="失败记录 CSV 报告路径"),
    show_progress: bool = typer.Option(True, "--progress/--no-progress", help="是否显示进度条"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """执行批量缩略图生成。"""

    setup_logging(logging.DEBUG if verbose else logging.INFO)
    logging.getLogger(__name__).debug("CLI 参数解析完成")

    try:
        spec = ThumbnailSpec(
            target_width=width,
            target_height=height,
            filter_kind=filter_kind,
            extension_filter=extension,
            output_format=output_format,
            jpeg_quality=jpeg_quality,
        )
        job = JobConfig(
            source_root=src.expanduser(),
            destination_root=dst.expanduser(),
            spec=spec,
            io_mode=IOMode.ASYNCHRONOUS if asynchronous else IOMode.PARALLEL,
            max_workers=workers,
            max_in_flight=max_in_flight,
        )

        if show_progress:
            progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
            )
            with progress:
                summary = run_batch(job, progress_callback=_build_progress_callback(progress))
        else:
            summary = run_batch(job)
    except (SetupError, InvalidConfigurationError) as exc:
        typer.secho(f"错误：{exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_SETUP) from exc

    for line in format_summary(summary):
        typer.echo(line)

    if report is not None:
        report_path = write_csv_report(summary, report.expanduser())
        typer.echo(f"报告文件：{report_path}")

    if summary.failed:
        raise typer.Exit(code=EXIT_FAILURES)


if __name__ == "__main__":
    app()
