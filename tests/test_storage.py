"""Tests for the last-track stores."""

from __future__ import annotations

from pathlib import Path

from track_progress.storage import FileTrackStore, InMemoryTrackStore


def test_in_memory_store_roundtrip() -> None:
    store = InMemoryTrackStore()
    assert store.get("lastGpxContent") is None
    store.set("lastGpxContent", "<gpx/>")
    assert store.get("lastGpxContent") == "<gpx/>"
    store.delete("lastGpxContent")
    store.delete("lastGpxContent")
    assert store.get("lastGpxContent") is None


def test_file_store_roundtrip(tmp_path: Path) -> None:
    store = FileTrackStore(tmp_path / "state")
    assert store.get("lastGpxContent") is None

    store.set("lastGpxContent", "first")
    store.set("lastGpxContent", "second")

    assert store.get("lastGpxContent") == "second"
    files = sorted(p.name for p in store.directory.iterdir())
    assert files == ["lastGpxContent.txt"]


def test_file_store_sanitizes_keys(tmp_path: Path) -> None:
    store = FileTrackStore(tmp_path)
    store.set("../escape/key", "value")
    assert store.get("../escape/key") == "value"
    assert (tmp_path / ".._escape_key.txt").exists()


def test_file_store_delete(tmp_path: Path) -> None:
    store = FileTrackStore(tmp_path)
    store.set("k", "v")
    store.delete("k")
    store.delete("k")
    assert store.get("k") is None


def test_file_store_relative_directory_resolves_against_cwd(
    tmp_path: Path, monkeypatch
) -> None:
    monkeypatch.chdir(tmp_path)
    store = FileTrackStore("relative")
    assert store.directory == tmp_path / "relative"
