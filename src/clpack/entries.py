"""Entry management utilities."""

from __future__ import annotations

from pathlib import Path

from .errors import InvalidEntryNameError, IoError, MissingEntryFileError
from .utils import GITKEEP_FILENAME, atomic_write_text, ensure_directory, log_debug, log_warning

ENTRIES_DIR = Path("entries")
ENTRY_SUFFIX = ".md"


def entry_directory(data_dir: Path) -> Path:
    """Return the directory containing unreleased changelog entries."""
    return data_dir / ENTRIES_DIR


def validate_entry_name(name: str) -> str:
    """Return ``name`` if it is usable as an entry file stem."""
    if not name or not name.strip():
        raise InvalidEntryNameError("Entry name cannot be empty.")
    if "/" in name or "\\" in name or "\0" in name:
        raise InvalidEntryNameError(f"Entry name '{name}' must not contain path separators.")
    if name.startswith("."):
        raise InvalidEntryNameError(f"Entry name '{name}' must not start with '.'.")
    return name


class EntryRepository:
    """Maps entry names to ``<name>.md`` files in the entries directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        ensure_directory(directory, what="Changelog entries directory")

    def path_for(self, name: str) -> Path:
        return self.directory / f"{validate_entry_name(name)}{ENTRY_SUFFIX}"

    def exists(self, name: str) -> bool:
        """Return True if an entry file for ``name`` is present."""
        try:
            return self.path_for(name).is_file()
        except InvalidEntryNameError:
            return False

    def create(self, name: str, content: str) -> Path:
        """Write an entry file atomically; an existing file is replaced."""
        path = self.path_for(name)
        log_debug(f"writing entry file: {path}")
        try:
            atomic_write_text(path, content)
        except OSError as exc:
            raise IoError(f"Failed to write changelog entry {path}: {exc}") from exc
        return path

    def read(self, name: str) -> str:
        try:
            path = self.path_for(name)
        except InvalidEntryNameError as exc:
            fallback = self.directory / f"{name}{ENTRY_SUFFIX}"
            raise MissingEntryFileError(name, fallback, exc.message) from exc
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise MissingEntryFileError(name, path) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise MissingEntryFileError(name, path, str(exc)) from exc

    def list_entries(self) -> list[tuple[str, str]]:
        """Return ``(name, content)`` pairs for every entry, sorted by file name.

        Foreign files are reported as warnings and skipped.
        """
        entries: list[tuple[str, str]] = []
        for path in self._iter_entry_paths():
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise IoError(f"Failed to read changelog entry {path}: {exc}") from exc
            entries.append((path.stem, content))
        return entries

    def names(self) -> list[str]:
        """Return entry names in the same order as :meth:`list_entries`."""
        return [path.stem for path in self._iter_entry_paths()]

    def _iter_entry_paths(self) -> list[Path]:
        try:
            candidates = sorted(self.directory.iterdir(), key=lambda item: item.name)
        except OSError as exc:
            raise IoError(f"Failed to list changelog entries in {self.directory}: {exc}") from exc
        paths: list[Path] = []
        for path in candidates:
            if path.name == GITKEEP_FILENAME or path.is_dir():
                continue
            if path.suffix != ENTRY_SUFFIX or path.name.startswith("."):
                log_warning(f"ignoring unexpected file in entries directory: {path.name}")
                continue
            paths.append(path)
        return paths
