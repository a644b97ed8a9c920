"""Unit tests for shared utilities."""

from __future__ import annotations

import os
import stat
from datetime import date
from pathlib import Path

import click
import pytest

from clpack.cli import INFO_PREFIX
from clpack.utils import (
    atomic_write_text,
    configure_logging,
    ensure_directory,
    format_date,
    log_debug,
    log_info,
)


def test_atomic_write_text_replaces_content(tmp_path: Path) -> None:
    target = tmp_path / "file.txt"
    target.write_text("old", encoding="utf-8")

    atomic_write_text(target, "new\r\nline")

    assert target.read_bytes() == b"new\r\nline"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["file.txt"]


def test_atomic_write_text_cleans_up_on_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    target = tmp_path / "file.txt"
    target.write_text("old", encoding="utf-8")

    def failing_replace(src: object, dst: object) -> None:
        raise OSError("rename failed")

    monkeypatch.setattr(os, "replace", failing_replace)

    with pytest.raises(OSError, match="rename failed"):
        atomic_write_text(target, "new")
    assert target.read_text(encoding="utf-8") == "old"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["file.txt"]


def test_ensure_directory_reports_creation(tmp_path: Path) -> None:
    assert ensure_directory(tmp_path / "sub") is True
    assert ensure_directory(tmp_path / "sub") is False
    assert (tmp_path / "sub" / ".gitkeep").exists()


def test_format_date() -> None:
    assert format_date("%Y/%m/%d", date(2025, 12, 31)) == "2025/12/31"


def test_log_helpers_prefix_every_line(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(debug=False)

    log_info("first\nsecond")
    log_debug("hidden")

    captured = capsys.readouterr()
    plain_prefix = click.utils.strip_ansi(INFO_PREFIX)
    assert captured.out == ""
    assert click.utils.strip_ansi(captured.err) == f"{plain_prefix}first\n{plain_prefix}second\n"


def test_debug_logging_is_opt_in(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(debug=True)
    try:
        log_debug("visible")
    finally:
        configure_logging(debug=False)

    assert "visible" in capsys.readouterr().err


@pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
def test_atomic_write_text_keeps_existing_mode(tmp_path: Path) -> None:
    target = tmp_path / "CHANGELOG.md"
    target.write_text("old", encoding="utf-8")
    target.chmod(0o644)

    atomic_write_text(target, "new")

    assert stat.S_IMODE(target.stat().st_mode) == 0o644
    assert target.read_text(encoding="utf-8") == "new"


@pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
def test_atomic_write_text_new_file_follows_umask(tmp_path: Path) -> None:
    previous = os.umask(0o022)
    try:
        atomic_write_text(tmp_path / "fresh.json", "[]\n")
    finally:
        os.umask(previous)

    assert stat.S_IMODE((tmp_path / "fresh.json").stat().st_mode) == 0o644
