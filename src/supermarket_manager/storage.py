"""Line-oriented storage backends.

Everything above this module talks to a :class:`LineStore`: a small
capability interface that reads, writes and appends whole lines to named
files. :class:`TextFileStorage` is the production backing and degrades every
I/O error into a logged no-op or an empty read. :class:`InMemoryStorage` keeps
the same contract without touching the disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Union

from . import log
from .constants import DEFAULT_DATA_DIRECTORY, FILE_ENCODING


class StorageError(Exception):
    """Raised by a backing that refuses to persist a write."""


class LineStore(Protocol):
    """Capability interface consumed by the ledgers."""

    def read_lines(self, name: str) -> List[str]:
        ...

    def write_lines(self, name: str, lines: Sequence[str]) -> None:
        ...

    def append(self, name: str, line: str) -> None:
        ...

    def exists(self, name: str) -> bool:
        ...

    def initialize(self, name: str) -> None:
        ...


class TextFileStorage:
    """Store named line files under a single data directory.

    Reads never raise: a missing or unreadable file yields an empty list, so
    callers cannot tell "empty" apart from "broken". Writes overwrite the whole
    file and swallow ``OSError`` after logging it. There is no atomic rename,
    so a crash mid-write can leave a truncated file behind.

    Args:
        data_directory (str | Path): Folder holding every file managed by the
            store. Created on construction when missing.
        encoding (str): Text encoding used for every read and write.
    """

    def __init__(self, data_directory: Union[str, Path] = DEFAULT_DATA_DIRECTORY, *, encoding: str = FILE_ENCODING) -> None:
        self.data_directory = Path(data_directory).expanduser()
        self.encoding = encoding
        if not self.data_directory.exists():
            try:
                self.data_directory.mkdir(parents=True, exist_ok=True)
                log.info("Created data directory: %s", self.data_directory.resolve())
            except OSError as exc:
                log.error("Unable to create data directory %s: %s", self.data_directory, exc)

    def path_for(self, name: str) -> Path:
        return self.data_directory / name

    def read_lines(self, name: str) -> List[str]:
        """Return every line of ``name`` without terminators.

        Only ``\\n``, ``\\r\\n`` and ``\\r`` end a line, matching what
        :meth:`write_lines` produces; other Unicode separators stay in the text.
        """

        path = self.path_for(name)
        if not path.exists():
            log.info("File not found: %s, returning empty list", name)
            return []
        try:
            with path.open("r", encoding=self.encoding) as handle:
                return [line.rstrip("\r\n") for line in handle]
        except (OSError, UnicodeDecodeError) as exc:
            log.error("Error reading file %s: %s", name, exc)
            return []

    def iter_lines(self, name: str) -> Iterator[str]:
        """Lazily yield the lines of ``name`` for files too big to slurp."""

        path = self.path_for(name)
        if not path.exists():
            return
        try:
            with path.open("r", encoding=self.encoding) as handle:
                for line in handle:
                    yield line.rstrip("\r\n")
        except (OSError, UnicodeDecodeError) as exc:
            log.error("Error reading file lazily %s: %s", name, exc)

    def write_lines(self, name: str, lines: Sequence[str]) -> None:
        """Overwrite ``name`` with ``lines``, one per row."""

        path = self.path_for(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding=self.encoding, newline="\n") as handle:
                for line in lines:
                    handle.write(line)
                    handle.write("\n")
            log.info("Wrote %d lines to %s", len(lines), name)
        except OSError as exc:
            log.error("Error writing to file %s: %s", name, exc)

    def append(self, name: str, line: str) -> None:
        path = self.path_for(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding=self.encoding, newline="\n") as handle:
                handle.write(line)
                handle.write("\n")
            log.info("Appended line to %s", name)
        except OSError as exc:
            log.error("Error appending to file %s: %s", name, exc)

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    def initialize(self, name: str) -> None:
        """Create an empty ``name`` unless it already exists."""

        path = self.path_for(name)
        if path.exists():
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch()
            log.info("Initialized file: %s", name)
        except OSError as exc:
            log.error("Error initializing file %s: %s", name, exc)

    def delete(self, name: str) -> bool:
        path = self.path_for(name)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as exc:
            log.error("Error deleting file %s: %s", name, exc)
            return False
        log.info("Deleted file: %s", name)
        return True

    def list_files(self) -> List[str]:
        if not self.data_directory.is_dir():
            return []
        return sorted(entry.name for entry in self.data_directory.iterdir() if entry.is_file())


class InMemoryStorage:
    """Dictionary-backed :class:`LineStore` with no disk access."""

    def __init__(self, files: Optional[Dict[str, Sequence[str]]] = None) -> None:
        self._files: Dict[str, List[str]] = {name: list(lines) for name, lines in (files or {}).items()}

    def read_lines(self, name: str) -> List[str]:
        return list(self._files.get(name, []))

    def write_lines(self, name: str, lines: Sequence[str]) -> None:
        self._files[name] = list(lines)

    def append(self, name: str, line: str) -> None:
        self._files.setdefault(name, []).append(line)

    def exists(self, name: str) -> bool:
        return name in self._files

    def initialize(self, name: str) -> None:
        self._files.setdefault(name, [])


__all__ = [
    "StorageError",
    "LineStore",
    "TextFileStorage",
    "InMemoryStorage",
]
