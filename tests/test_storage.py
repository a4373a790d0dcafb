"""Unit tests documenting the line store contract."""

from __future__ import annotations

from pathlib import Path

import pytest

from supermarket_manager.storage import InMemoryStorage, TextFileStorage


def test_constructor_creates_data_directory(tmp_path: Path):
    """The data directory should exist as soon as the store is built."""

    target = tmp_path / "nested" / "data"
    TextFileStorage(target)
    assert target.is_dir()


def test_read_lines_missing_file_returns_empty(file_storage: TextFileStorage):
    """A missing file reads as empty rather than raising."""

    assert file_storage.read_lines("absent.txt") == []


def test_read_lines_unreadable_file_returns_empty(file_storage: TextFileStorage, data_dir: Path):
    """A path that cannot be read as text degrades to an empty list."""

    (data_dir / "folder.txt").mkdir()
    assert file_storage.read_lines("folder.txt") == []


def test_read_lines_undecodable_file_returns_empty(file_storage: TextFileStorage, data_dir: Path):
    """Bytes that are not valid UTF-8 degrade to an empty list."""

    (data_dir / "binary.txt").write_bytes(b"\xff\xfe\xfa")
    assert file_storage.read_lines("binary.txt") == []


def test_write_lines_overwrites_content(file_storage: TextFileStorage, data_dir: Path):
    """write_lines replaces the whole file, one line per entry."""

    file_storage.write_lines("items.txt", ["a", "b", "c"])
    file_storage.write_lines("items.txt", ["z"])

    assert (data_dir / "items.txt").read_text(encoding="utf-8") == "z\n"
    assert file_storage.read_lines("items.txt") == ["z"]


def test_write_lines_creates_parent_directories(file_storage: TextFileStorage, data_dir: Path):
    """Nested names get their directories created on demand."""

    file_storage.write_lines("archive/2025.txt", ["x"])
    assert (data_dir / "archive" / "2025.txt").exists()


def test_write_lines_swallows_os_errors(file_storage: TextFileStorage, data_dir: Path, caplog: pytest.LogCaptureFixture):
    """An unwritable target is logged, not raised."""

    (data_dir / "blocked.txt").mkdir()
    caplog.set_level("ERROR")

    file_storage.write_lines("blocked.txt", ["x"])

    assert any("blocked.txt" in record.getMessage() for record in caplog.records)


def test_write_lines_preserves_utf8(file_storage: TextFileStorage):
    """Non-ASCII content survives a write/read cycle."""

    file_storage.write_lines("names.txt", ["Crème fraîche", "Pão de queijo"])
    assert file_storage.read_lines("names.txt") == ["Crème fraîche", "Pão de queijo"]


def test_append_creates_file_and_adds_line(file_storage: TextFileStorage):
    """append should create the file if needed and add one line at the end."""

    file_storage.append("log.txt", "first")
    file_storage.append("log.txt", "second")
    assert file_storage.read_lines("log.txt") == ["first", "second"]


def test_exists_reports_presence(file_storage: TextFileStorage):
    assert not file_storage.exists("products.txt")
    file_storage.initialize("products.txt")
    assert file_storage.exists("products.txt")


def test_initialize_is_idempotent(file_storage: TextFileStorage):
    """A second initialize must not touch existing content."""

    file_storage.initialize("products.txt")
    file_storage.write_lines("products.txt", ["kept"])
    file_storage.initialize("products.txt")

    assert file_storage.read_lines("products.txt") == ["kept"]


def test_iter_lines_streams_file(file_storage: TextFileStorage):
    file_storage.write_lines("stream.txt", ["1", "2", "3"])
    assert list(file_storage.iter_lines("stream.txt")) == ["1", "2", "3"]
    assert list(file_storage.iter_lines("missing.txt")) == []


def test_delete_and_list_files(file_storage: TextFileStorage):
    """delete removes a file once; list_files reflects the directory."""

    file_storage.initialize("b.txt")
    file_storage.initialize("a.txt")
    assert file_storage.list_files() == ["a.txt", "b.txt"]

    assert file_storage.delete("a.txt") is True
    assert file_storage.delete("a.txt") is False
    assert file_storage.list_files() == ["b.txt"]


def test_in_memory_storage_follows_contract():
    """The in-memory backing behaves like the file store for the ledgers."""

    store = InMemoryStorage({"seed.txt": ["one"]})
    assert store.read_lines("seed.txt") == ["one"]
    assert store.read_lines("missing.txt") == []

    store.initialize("seed.txt")
    assert store.read_lines("seed.txt") == ["one"]

    store.append("seed.txt", "two")
    store.write_lines("other.txt", ["x"])
    assert store.read_lines("seed.txt") == ["one", "two"]
    assert store.exists("other.txt")


def test_in_memory_storage_returns_copies():
    """Mutating a returned list must not alter stored content."""

    store = InMemoryStorage()
    store.write_lines("a.txt", ["x"])
    store.read_lines("a.txt").append("y")
    assert store.read_lines("a.txt") == ["x"]


def test_read_lines_keeps_unicode_separators(file_storage: TextFileStorage):
    """Only newline terminators split rows; U+2028 and friends stay inside."""

    lines = ["Café\u2028Latte", "form\x0cfeed", "next\x85line"]
    file_storage.write_lines("names.txt", lines)

    assert file_storage.read_lines("names.txt") == lines
    assert list(file_storage.iter_lines("names.txt")) == lines


def test_read_lines_accepts_windows_line_endings(file_storage: TextFileStorage, data_dir: Path):
    (data_dir / "dos.txt").write_bytes(b"first\r\nsecond\rthird")
    assert file_storage.read_lines("dos.txt") == ["first", "second", "third"]
