from __future__ import annotations

import os
from pathlib import Path

import pytest

from tools import FileCopier, TreeDeleter, TreeDeleteTool, move_path


# ---------------------------------------------------------------- FileCopier


@pytest.mark.parametrize("size", [0, 1, 65536 * 3 + 17])
def test_copy_preserves_size_and_bytes(tmp_path: Path, size: int) -> None:
    source = tmp_path / "source.bin"
    data = os.urandom(size)
    source.write_bytes(data)
    destination = tmp_path / "dest.bin"

    FileCopier().copy(source, destination)

    assert destination.stat().st_size == size
    assert destination.read_bytes() == data


def test_copy_creates_missing_destination(tmp_path: Path) -> None:
    source = tmp_path / "aop-ajc.xml"
    source.write_text("<aspectj/>")
    destination = tmp_path / "META-INF" / "aop-ajc.xml"
    destination.parent.mkdir()

    result = FileCopier().copy(source, destination)

    assert result == destination
    assert destination.read_text() == "<aspectj/>"


def test_copy_overwrites_existing_destination(tmp_path: Path) -> None:
    source = tmp_path / "MANIFEST.MF"
    source.write_text("Manifest-Version: 1.0\n")
    destination = tmp_path / "copy.MF"
    destination.write_text("a much longer stale manifest that must not survive\n")

    FileCopier().copy(source, destination)

    assert destination.read_text() == "Manifest-Version: 1.0\n"


def test_copy_missing_source_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        FileCopier().copy(tmp_path / "absent", tmp_path / "dest")


# --------------------------------------------------------------- TreeDeleter


def _make_tree(root: Path) -> list[Path]:
    files = [
        root / "a.txt",
        root / "mop" / "Monitor.class",
        root / "mop" / "inner" / "Event.class",
        root / "mop" / "inner" / "deeper" / "Set.class",
        root / "META-INF" / "aop-ajc.xml",
    ]
    for path in files:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x")
    (root / "empty").mkdir()
    return files


def test_delete_removes_whole_tree(tmp_path: Path) -> None:
    root = tmp_path / "agent-jar123"
    _make_tree(root)

    TreeDeleter().delete(root)

    assert not root.exists()
    assert tmp_path.exists()


def test_delete_removes_children_before_parents(tmp_path: Path) -> None:
    root = tmp_path / "tree"
    files = _make_tree(root)
    removed: list[Path] = []

    TreeDeleter(on_delete=removed.append).delete(root)

    assert removed[-1] == root
    assert set(files) <= set(removed)
    for index, path in enumerate(removed):
        for later in removed[index + 1 :]:
            assert path not in later.parents, f"{later} removed after its child {path}"
    # N files + M directories (root, mop, inner, deeper, META-INF, empty)
    assert len(removed) == len(files) + 6


def test_delete_does_not_follow_symlinks(tmp_path: Path) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()
    keep = outside / "keep.txt"
    keep.write_text("keep")
    root = tmp_path / "tree"
    root.mkdir()
    (root / "link").symlink_to(outside, target_is_directory=True)

    TreeDeleter().delete(root)

    assert not root.exists()
    assert keep.read_text() == "keep"


def test_delete_unreadable_attributes_still_deletes(tmp_path: Path, monkeypatch) -> None:
    root = tmp_path / "tree"
    _make_tree(root)
    secret = root / "mop" / "Monitor.class"
    real_lstat = Path.lstat

    def guarded_lstat(self, *args, **kwargs):
        if self == secret:
            raise PermissionError(13, "Permission denied", str(self))
        return real_lstat(self, *args, **kwargs)

    monkeypatch.setattr(Path, "lstat", guarded_lstat)

    TreeDeleter().delete(root)

    assert not root.exists()


def test_delete_failure_aborts_and_propagates(tmp_path: Path, monkeypatch) -> None:
    root = tmp_path / "tree"
    _make_tree(root)
    stuck = root / "mop" / "inner" / "Event.class"
    real_unlink = Path.unlink

    def guarded_unlink(self, *args, **kwargs):
        if self == stuck:
            raise PermissionError(13, "Permission denied", str(self))
        return real_unlink(self, *args, **kwargs)

    monkeypatch.setattr(Path, "unlink", guarded_unlink)

    with pytest.raises(PermissionError):
        TreeDeleter().delete(root)

    assert stuck.exists()
    assert (root / "mop" / "inner").is_dir()
    assert root.is_dir()


def test_listing_failure_keeps_directory(tmp_path: Path, monkeypatch) -> None:
    root = tmp_path / "tree"
    _make_tree(root)
    unlistable = root / "mop"
    real_scandir = os.scandir

    def guarded_scandir(path=None):
        if Path(path) == unlistable:
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", guarded_scandir)

    with pytest.raises(PermissionError):
        TreeDeleter().delete(root)

    assert unlistable.is_dir()
    assert root.is_dir()


def test_delete_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        TreeDeleter().delete(tmp_path / "never-created")


# ----------------------------------------------------------------- move_path


def test_move_path_renames_directory(tmp_path: Path) -> None:
    source = tmp_path / "out" / "mop"
    (source / "inner").mkdir(parents=True)
    (source / "inner" / "A.class").write_bytes(b"\xca\xfe")
    workspace = tmp_path / "out" / "agent-jar1"
    workspace.mkdir()
    inode = source.stat().st_ino

    moved = move_path(source, workspace / "mop")

    assert not source.exists()
    assert moved.stat().st_ino == inode
    assert (moved / "inner" / "A.class").read_bytes() == b"\xca\xfe"


# ------------------------------------------------------------ TreeDeleteTool


def test_tree_delete_tool_counts_removed_entries(tmp_path: Path) -> None:
    root = tmp_path / "agent-jar9"
    files = _make_tree(root)

    result = TreeDeleteTool(tmp_path).execute("agent-jar9")

    assert result.success is True
    assert result.metadata["removed"] == len(files) + 6
    assert not root.exists()


def test_tree_delete_tool_reports_missing_path(tmp_path: Path) -> None:
    result = TreeDeleteTool(tmp_path).execute("absent")

    assert result.success is False
    assert "absent" in result.error


def test_tree_delete_tool_reports_deletion_failure(tmp_path: Path, monkeypatch) -> None:
    root = tmp_path / "agent-jar3"
    _make_tree(root)

    def refuse(self, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "rmdir", refuse)

    result = TreeDeleteTool(tmp_path).execute(root)

    assert result.success is False
    assert "Permission denied" in result.error
    assert result.metadata["removed"] > 0
    assert root.exists()
