"""测试文件扫描、筛选与目标路径映射。"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from bulk_thumbnails.core.config import OutputFormat, ThumbnailSpec
from bulk_thumbnails.core.exceptions import SetupError
from bulk_thumbnails.core.scanner import is_eligible, mirror_destination, scan_tree


def touch(path: Path, content: bytes = b"x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def test_extension_match_is_case_insensitive(tmp_path: Path) -> None:
    source = tmp_path / "src"
    touch(source / "a.tiff")
    touch(source / "b.png")
    touch(source / "c.TIFF")

    items = list(scan_tree(source, tmp_path / "dst", ThumbnailSpec(extension_filter="tiff")))

    assert sorted(item.source_path.name for item in items) == ["a.tiff", "c.TIFF"]


def test_extension_filter_accepts_leading_dot(tmp_path: Path) -> None:
    source = tmp_path / "src"
    touch(source / "photo.PNG")

    items = list(scan_tree(source, tmp_path / "dst", ThumbnailSpec(extension_filter=".png")))

    assert [item.source_path.name for item in items] == ["photo.PNG"]


def test_destination_mirrors_relative_path(tmp_path: Path) -> None:
    source = tmp_path / "src"
    dest = tmp_path / "dst"
    touch(source / "sub" / "img.tiff")

    items = list(scan_tree(source, dest, ThumbnailSpec()))

    assert len(items) == 1
    assert items[0].source_path == (source / "sub" / "img.tiff").resolve()
    assert items[0].destination_path == (dest / "sub" / "img.tiff").resolve()


def test_explicit_output_format_replaces_suffix(tmp_path: Path) -> None:
    source = tmp_path / "src"
    dest = tmp_path / "dst"
    touch(source / "sub" / "img.tiff")

    items = list(scan_tree(source, dest, ThumbnailSpec(output_format=OutputFormat.JPEG)))

    assert items[0].destination_path == (dest / "sub" / "img.jpg").resolve()


def test_scan_is_depth_first_and_sorted(tmp_path: Path) -> None:
    source = tmp_path / "src"
    touch(source / "b.tiff")
    touch(source / "a" / "z.tiff")
    touch(source / "a" / "y" / "x.tiff")
    touch(source / "c.tiff")

    items = scan_tree(source, tmp_path / "dst", ThumbnailSpec())
    names = [item.source_path.relative_to(source.resolve()).as_posix() for item in items]

    assert names == ["a/y/x.tiff", "a/z.tiff", "b.tiff", "c.tiff"]


def test_scan_does_not_create_destination(tmp_path: Path) -> None:
    source = tmp_path / "src"
    dest = tmp_path / "dst"
    touch(source / "sub" / "img.tiff")
    touch(source / "empty" / "notes.txt")

    list(scan_tree(source, dest, ThumbnailSpec()))

    assert not dest.exists()


def test_missing_source_raises_setup_error_immediately(tmp_path: Path) -> None:
    with pytest.raises(SetupError):
        scan_tree(tmp_path / "missing", tmp_path / "dst", ThumbnailSpec())


def test_file_as_source_raises_setup_error(tmp_path: Path) -> None:
    source = touch(tmp_path / "file.tiff")

    with pytest.raises(SetupError):
        scan_tree(source, tmp_path / "dst", ThumbnailSpec())


def test_directory_with_matching_suffix_is_not_eligible(tmp_path: Path) -> None:
    folder = tmp_path / "album.tiff"
    folder.mkdir()

    assert not is_eligible(folder, "tiff")
    assert is_eligible(touch(tmp_path / "real.tiff"), "tiff")


def test_symlinked_directories_are_skipped(tmp_path: Path) -> None:
    source = tmp_path / "src"
    touch(source / "real" / "img.tiff")
    try:
        os.symlink(source / "real", source / "link", target_is_directory=True)
        # 指向自身的循环链接
        os.symlink(source, source / "real" / "loop", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("当前平台不支持创建符号链接")

    items = list(scan_tree(source, tmp_path / "dst", ThumbnailSpec()))

    assert [item.source_path.name for item in items] == ["img.tiff"]
    assert "link" not in items[0].source_path.parts


def test_destination_inside_source_is_skipped(tmp_path: Path) -> None:
    source = tmp_path / "src"
    dest = source / "thumbs"
    touch(source / "img.tiff")
    touch(dest / "old.tiff")

    items = list(scan_tree(source, dest, ThumbnailSpec()))

    assert [item.source_path.name for item in items] == ["img.tiff"]


def test_mirror_destination_rejects_parent_traversal(tmp_path: Path) -> None:
    with pytest.raises(SetupError):
        mirror_destination(Path("..") / "escape.tiff", tmp_path / "dst", ThumbnailSpec())


def test_destination_equal_to_source_is_rejected(tmp_path: Path) -> None:
    source = tmp_path / "src"
    touch(source / "img.tiff")

    with pytest.raises(SetupError):
        scan_tree(source, source, ThumbnailSpec())


def test_inaccessible_subdirectories_are_skipped(tmp_path: Path) -> None:
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        pytest.skip("root 用户不受目录权限限制")

    source = tmp_path / "src"
    touch(source / "a.tiff")
    touch(source / "unlisted" / "b.tiff")
    touch(source / "unentered" / "c.tiff")
    touch(source / "z" / "d.tiff")
    (source / "unlisted").chmod(0o000)
    # 可列出但不可进入：iterdir 成功，条目 stat 失败。
    (source / "unentered").chmod(0o444)
    try:
        items = list(scan_tree(source, tmp_path / "dst", ThumbnailSpec()))
    finally:
        (source / "unlisted").chmod(0o755)
        (source / "unentered").chmod(0o755)

    assert [item.source_path.name for item in items] == ["a.tiff", "d.tiff"]


def test_colliding_destinations_get_distinct_names(tmp_path: Path) -> None:
    source = tmp_path / "src"
    dest = tmp_path / "dst"
    touch(source / "a.TIFF")
    touch(source / "a.tiff")
    touch(source / "a_1.tiff")

    items = list(scan_tree(source, dest, ThumbnailSpec(output_format=OutputFormat.JPEG)))

    names = [item.destination_path.name for item in items]
    assert names == ["a.jpg", "a_1.jpg", "a_1_1.jpg"]
    assert all(item.destination_path.parent == dest.resolve() for item in items)
