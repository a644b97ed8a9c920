"""Tests for branch name detection."""

from __future__ import annotations

from pathlib import Path

import pytest

from clpack.branches import BranchResolver, as_regex_pattern, current_branch
from clpack.config import Config
from clpack.errors import ConfigError


def test_default_patterns() -> None:
    resolver = BranchResolver(Config())

    assert resolver.version("rel/3.14") == "3.14"
    assert resolver.version("rel/3.14-hotfix") is None
    assert resolver.issue("1234-fix-login") == "1234"
    assert resolver.issue("SW-778-new-export") == "SW-778"
    assert resolver.issue("feature/no-number") is None
    assert resolver.channel("main") == "default"
    assert resolver.channel("master") == "default"
    assert resolver.channel("develop") is None


def test_channel_matching_rules() -> None:
    config = Config(
        channels={
            "manual": "",
            "default": "main",
            "lts": "/^lts\\//",
            "beta": "/^beta/",
        }
    )
    resolver = BranchResolver(config)

    assert resolver.channel("main") == "default"
    assert resolver.channel("main-backport") is None
    assert resolver.channel("lts/2.0") == "lts"
    assert resolver.channel("beta-next") == "beta"
    assert resolver.channel("") is None


def test_first_matching_channel_wins() -> None:
    resolver = BranchResolver(Config(channels={"one": "/x/", "two": "/x/"}))

    assert resolver.channel("xyz") == "one"


def test_disabled_patterns_return_none() -> None:
    resolver = BranchResolver(Config(branch_issue_pattern=None, branch_version_pattern=""))

    assert resolver.issue("1234-fix") is None
    assert resolver.version("rel/1.0") is None


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"branch_version_pattern": "rel/(.*)"}, "enclosed in slashes"),
        ({"branch_version_pattern": "/(a)(b)/"}, "exactly one capturing group"),
        ({"branch_version_pattern": "/rel/"}, "exactly one capturing group"),
        ({"branch_version_pattern": "/rel/(/"}, "Invalid regex"),
    ],
)
def test_invalid_extraction_patterns(overrides: dict[str, str], message: str) -> None:
    resolver = BranchResolver(Config(**overrides))  # type: ignore[arg-type]

    with pytest.raises(ConfigError, match=message):
        resolver.version("rel/1.0")


def test_invalid_channel_regex() -> None:
    resolver = BranchResolver(Config(channels={"broken": "/[/"}))

    with pytest.raises(ConfigError, match="channels.broken"):
        resolver.channel("main")


def test_as_regex_pattern() -> None:
    assert as_regex_pattern("/^main$/") == "^main$"
    assert as_regex_pattern("main") is None
    assert as_regex_pattern("/") is None


def test_current_branch(tmp_path: Path) -> None:
    assert current_branch(tmp_path) is None

    git_dir = tmp_path / ".git"
    git_dir.mkdir()
    head = git_dir / "HEAD"
    head.write_text("ref: refs/heads/feature/1234-login\n", encoding="utf-8")
    assert current_branch(tmp_path) == "feature/1234-login"

    head.write_text("3f2a9c1d0e5b7a8c9d0e1f2a3b4c5d6e7f8a9b0c\n", encoding="utf-8")
    assert current_branch(tmp_path) is None
