"""Tests for the changelog store."""

from __future__ import annotations

import json
import os
from datetime import date
from pathlib import Path
from typing import Any

import pytest

from clpack.config import AppContext, Config
from clpack.errors import (
    ClobberedPathError,
    ConfigError,
    CorruptLedgerError,
    DuplicateVersionError,
    IoError,
    LedgerOutOfSyncError,
    MissingEntryFileError,
    NotInitializedError,
    NotWritableError,
    UnknownChannelError,
)
from clpack.ledger import ChannelLedger, Release
from clpack.store import Store

TODAY = date(2024, 5, 1)


def make_ctx(root: Path, **overrides: Any) -> AppContext:
    values: dict[str, Any] = {
        "channels": {"default": "main", "beta": "/^beta/"},
        "sections": ["Fixes", "Improvements"],
    }
    values.update(overrides)
    return AppContext(root=root, config=Config(**values), binary_name="cl")


def open_store(root: Path, **overrides: Any) -> Store:
    return Store.open(make_ctx(root, **overrides), init=True)


def test_open_without_init_requires_existing_directory(tmp_path: Path) -> None:
    with pytest.raises(NotInitializedError, match="`cl init`"):
        Store.open(make_ctx(tmp_path))
    assert not (tmp_path / "changelog").exists()


def test_open_with_init_creates_layout(tmp_path: Path) -> None:
    store = open_store(tmp_path)

    data_dir = tmp_path / "changelog"
    assert store.data_dir == data_dir
    assert (data_dir / "entries" / ".gitkeep").exists()
    assert (data_dir / "channels" / ".gitkeep").exists()
    assert json.loads((data_dir / "channels" / "default.json").read_text()) == []
    assert json.loads((data_dir / "channels" / "beta.json").read_text()) == []
    assert store.channels == ("default", "beta")


def test_open_existing_store_without_init(tmp_path: Path) -> None:
    open_store(tmp_path)

    store = Store.open(make_ctx(tmp_path))

    assert store.channels == ("default", "beta")


def test_open_rejects_clobbered_data_folder(tmp_path: Path) -> None:
    (tmp_path / "changelog").write_text("oops", encoding="utf-8")

    with pytest.raises(ClobberedPathError):
        open_store(tmp_path)


@pytest.mark.parametrize("subdir", ["entries", "channels"])
def test_open_rejects_clobbered_subdirectories(tmp_path: Path, subdir: str) -> None:
    data_dir = tmp_path / "changelog"
    data_dir.mkdir()
    (data_dir / subdir).write_text("oops", encoding="utf-8")

    with pytest.raises(ClobberedPathError, match=subdir):
        open_store(tmp_path)


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="permission checks are bypassed for root",
)
def test_open_rejects_read_only_data_folder(tmp_path: Path) -> None:
    data_dir = tmp_path / "changelog"
    data_dir.mkdir()
    data_dir.chmod(0o500)
    try:
        with pytest.raises(NotWritableError):
            open_store(tmp_path)
    finally:
        data_dir.chmod(0o700)


def test_corrupt_ledger_fails_the_whole_open(tmp_path: Path) -> None:
    open_store(tmp_path)
    (tmp_path / "changelog" / "channels" / "beta.json").write_text("{", encoding="utf-8")

    with pytest.raises(CorruptLedgerError, match="beta"):
        open_store(tmp_path)


def test_create_entry_is_visible(tmp_path: Path) -> None:
    store = open_store(tmp_path)

    store.create_entry("12-fix", "# Fixes\n- crash\n")

    assert store.entry_exists("12-fix")
    assert ("12-fix", "# Fixes\n- crash\n") in store.list_entries()
    assert not store.entry_exists("13-other")


def test_find_unreleased_changes_is_per_channel(tmp_path: Path) -> None:
    store = open_store(tmp_path)
    for name in ("c", "a", "b"):
        store.create_entry(name, f"- {name}\n")

    store.create_release("default", Release("1.0", ("a", "b")), today=TODAY)

    assert store.find_unreleased_changes("default") == ["c"]
    assert store.find_unreleased_changes("beta") == ["a", "b", "c"]


def test_find_unreleased_changes_rejects_unknown_channel(tmp_path: Path) -> None:
    store = open_store(tmp_path)

    with pytest.raises(UnknownChannelError, match="nightly"):
        store.find_unreleased_changes("nightly")


def test_create_release_writes_changelog_and_ledger(tmp_path: Path) -> None:
    store = open_store(tmp_path, release_header="{VERSION} ({DATE})")
    store.create_entry("a", "# Improvements\nDid X\n# Fixes\nDid Y\n")
    store.create_entry("b", "Misc note\n")
    store.create_entry("c", "# Fixes\nLater\n")

    store.create_release("default", Release("1.0", ("a", "b")), today=TODAY)
    store.create_release("default", Release("1.1", ("c",)), today=TODAY)

    changelog = (tmp_path / "CHANGELOG.md").read_text(encoding="utf-8")
    assert changelog == (
        "# Changelog\n\n"
        "## 1.1 (2024-05-01)\n\n### Fixes\n\nLater\n\n"
        "## 1.0 (2024-05-01)\n\nMisc note\n\n### Fixes\n\nDid Y\n\n### Improvements\n\nDid X\n\n"
    )
    ledger = json.loads((tmp_path / "changelog" / "channels" / "default.json").read_text())
    assert ledger == [
        {"version": "1.0", "entries": ["a", "b"]},
        {"version": "1.1", "entries": ["c"]},
    ]


def test_create_release_uses_channel_changelog_file(tmp_path: Path) -> None:
    store = open_store(tmp_path)
    store.create_entry("a", "- beta only\n")

    store.create_release("beta", Release("2.0-beta1", ("a",)), today=TODAY)

    assert (tmp_path / "CHANGELOG-BETA.md").exists()
    assert not (tmp_path / "CHANGELOG.md").exists()


def test_version_must_be_unique_across_channels(tmp_path: Path) -> None:
    store = open_store(tmp_path)
    store.create_entry("a", "- a\n")
    store.create_entry("b", "- b\n")
    store.create_release("default", Release("1.0", ("a",)), today=TODAY)
    beta_before = store.ledger("beta").releases
    default_before = store.ledger("default").releases

    assert store.version_exists("1.0")
    with pytest.raises(DuplicateVersionError, match="default"):
        store.create_release("beta", Release("1.0", ("b",)), today=TODAY)

    assert store.ledger("beta").releases == beta_before
    assert store.ledger("default").releases == default_before
    assert not (tmp_path / "CHANGELOG-BETA.md").exists()


def test_missing_entry_file_aborts_before_any_write(tmp_path: Path) -> None:
    store = open_store(tmp_path)
    store.create_entry("a", "- a\n")
    ledger_file = tmp_path / "changelog" / "channels" / "default.json"
    ledger_before = ledger_file.read_text(encoding="utf-8")

    with pytest.raises(MissingEntryFileError, match="deleted"):
        store.create_release("default", Release("1.0", ("a", "deleted")), today=TODAY)

    assert not (tmp_path / "CHANGELOG.md").exists()
    assert ledger_file.read_text(encoding="utf-8") == ledger_before
    assert not store.version_exists("1.0")


def test_render_release_is_repeatable_and_side_effect_free(tmp_path: Path) -> None:
    store = open_store(tmp_path)
    store.create_entry("a", "# Fixes\n- a\n# Custom\n- c\n")
    release = Release("1.0", ("a",))

    first = store.render_release(release, today=TODAY)
    second = store.render_release(release, today=TODAY)

    assert first == second
    assert not (tmp_path / "CHANGELOG.md").exists()
    assert not store.version_exists("1.0")


def test_releases_survive_reopening(tmp_path: Path) -> None:
    store = open_store(tmp_path)
    store.create_entry("a", "- a\n")
    store.create_entry("b", "- b\n")
    store.create_release("beta", Release("0.9", ("b", "a")), today=TODAY)

    reopened = Store.open(make_ctx(tmp_path))

    assert reopened.ledger("beta").releases == (Release("0.9", ("b", "a")),)
    assert reopened.version_exists("0.9")
    assert reopened.find_unreleased_changes("beta") == []


def test_ledger_failure_after_changelog_write_is_loud(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    store = open_store(tmp_path)
    store.create_entry("a", "- a\n")

    def failing_flush(self: ChannelLedger) -> None:
        raise IoError("disk full")

    monkeypatch.setattr(ChannelLedger, "flush", failing_flush)

    with pytest.raises(LedgerOutOfSyncError, match="OUT OF SYNC") as excinfo:
        store.create_release("default", Release("1.0", ("a",)), today=TODAY)

    assert isinstance(excinfo.value, IoError)
    assert "## [1.0]" in (tmp_path / "CHANGELOG.md").read_text(encoding="utf-8")
    assert not store.version_exists("1.0")
    assert store.find_unreleased_changes("default") == ["a"]


def test_stage_then_commit(tmp_path: Path) -> None:
    store = open_store(tmp_path)
    store.create_entry("a", "# Fixes\n- a\n")

    staged = store.stage("default", Release("1.0", ("a",)), today=TODAY)

    assert staged.fragment == "## [1.0] - 2024-05-01\n\n### Fixes\n\n- a\n\n"
    assert not (tmp_path / "CHANGELOG.md").exists()

    store.commit(staged)

    assert store.version_exists("1.0")
    with pytest.raises(DuplicateVersionError):
        store.commit(staged)


def test_stage_rejects_empty_version(tmp_path: Path) -> None:
    store = open_store(tmp_path)

    with pytest.raises(ConfigError, match="cannot be empty"):
        store.stage("default", Release("  ", ()))


def test_release_hooks_run_after_success_only(tmp_path: Path) -> None:
    store = open_store(tmp_path)
    store.create_entry("a", "- a\n")
    calls: list[tuple[str, Release]] = []
    store.add_release_hook(lambda channel, release: calls.append((channel, release)))

    with pytest.raises(MissingEntryFileError):
        store.create_release("default", Release("0.1", ("missing",)), today=TODAY)
    store.create_release("default", Release("1.0", ("a",)), today=TODAY)

    assert calls == [("default", Release("1.0", ("a",)))]


def test_stage_rejects_padded_version(tmp_path: Path) -> None:
    store = open_store(tmp_path)
    store.create_entry("a", "- a\n")
    store.create_entry("b", "- b\n")
    store.create_release("default", Release("1.0", ("a",)), today=TODAY)

    with pytest.raises(ConfigError, match="whitespace"):
        store.create_release("beta", Release("1.0 ", ("b",)), today=TODAY)

    assert store.ledger("beta").releases == ()
    assert not (tmp_path / "CHANGELOG-BETA.md").exists()


def test_release_referencing_invalid_entry_name_is_missing(tmp_path: Path) -> None:
    store = open_store(tmp_path)

    with pytest.raises(MissingEntryFileError, match="a/b"):
        store.create_release("default", Release("1.0", ("a/b",)), today=TODAY)
    assert not (tmp_path / "CHANGELOG.md").exists()
