"""
Tests for the FolderScanner utility.
"""

from pathlib import Path

import pytest

from mrf_loader.ingest.folder_scanner import FolderScanner


def _create_drop_folder(root: Path):
    """Create a flat drop folder with mixed file types."""
    (root / "b-in-network.json").write_text("[]", encoding="utf-8")
    (root / "a-in-network.JSON").write_text("[ ]", encoding="utf-8")
    (root / "README.txt").write_text("notes", encoding="utf-8")
    (root / "archive.json.gz").write_bytes(b"gz")

    nested = root / "nested"
    nested.mkdir()
    (nested / "deeper.json").write_text("[]", encoding="utf-8")

    # A directory whose name looks like an input file
    (root / "looks-like.json").mkdir()


def test_scan_folder_filters_by_extension(tmp_path):
    """Only files ending in .json are yielded, matched case-insensitively."""
    _create_drop_folder(tmp_path)
    scanner = FolderScanner()

    names = [entry["name"] for entry in scanner.scan_folder(str(tmp_path))]

    assert names == ["a-in-network.JSON", "b-in-network.json"]


def test_scan_folder_is_not_recursive(tmp_path):
    _create_drop_folder(tmp_path)

    names = {entry["name"] for entry in FolderScanner().scan_folder(tmp_path)}

    assert "deeper.json" not in names
    assert "looks-like.json" not in names


def test_scan_folder_custom_extensions(tmp_path):
    """Configured extensions replace the default."""
    _create_drop_folder(tmp_path)
    scanner = FolderScanner([".json.gz", ".JSON"])

    names = [entry["name"] for entry in scanner.scan_folder(tmp_path)]

    assert names == ["a-in-network.JSON", "archive.json.gz", "b-in-network.json"]


def test_scan_folder_yields_absolute_paths(tmp_path):
    _create_drop_folder(tmp_path)

    entry = next(FolderScanner().scan_folder(tmp_path))

    assert Path(entry["path"]).is_absolute()
    assert entry["size_bytes"] == 3


def test_scan_folder_raises_for_missing_path():
    """Non-existent folder should raise a ValueError."""
    scanner = FolderScanner()

    with pytest.raises(ValueError):
        list(scanner.scan_folder("/path/does/not/exist"))


def test_scan_folder_raises_for_file(tmp_path):
    target = tmp_path / "single.json"
    target.write_text("[]", encoding="utf-8")

    with pytest.raises(ValueError, match="Not a directory"):
        list(FolderScanner().scan_folder(target))


def test_scan_empty_folder(tmp_path):
    (tmp_path / "random.xyz").write_text("content", encoding="utf-8")

    assert list(FolderScanner().scan_folder(tmp_path)) == []


def test_matches():
    scanner = FolderScanner([".json"])

    assert scanner.matches(Path("rates.Json"))
    assert not scanner.matches(Path("rates.json.bak"))


def test_unreadable_entry_is_not_skipped(tmp_path, monkeypatch):
    """A matching file that cannot be stat'ed fails the scan."""
    _create_drop_folder(tmp_path)
    real_stat = Path.stat

    def failing_stat(self, *args, **kwargs):
        if self.name == "b-in-network.json":
            raise PermissionError(13, "Permission denied", str(self))
        return real_stat(self, *args, **kwargs)

    monkeypatch.setattr(Path, "stat", failing_stat)

    with pytest.raises(PermissionError):
        list(FolderScanner().scan_folder(tmp_path))
