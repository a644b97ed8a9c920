"""Channel, version and issue detection from git branch names.

Nothing in the store depends on this module; the CLI feeds the resolved
strings into it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import Config
from .errors import ConfigError
from .utils import log_debug

_HEAD_PREFIX = "ref: refs/heads/"


def current_branch(project_root: Path) -> Optional[str]:
    """Best-effort branch name from ``.git/HEAD``; None when detached or absent."""
    head = project_root / ".git" / "HEAD"
    if not head.is_file():
        return None
    try:
        contents = head.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log_debug(f"failed to read {head}: {exc}")
        return None
    if not contents.startswith(_HEAD_PREFIX):
        return None
    branch = contents[len(_HEAD_PREFIX) :].strip()
    return branch or None


def as_regex_pattern(value: str) -> Optional[str]:
    """Return the inner pattern if ``value`` is enclosed in slashes."""
    if len(value) >= 2 and value.startswith("/") and value.endswith("/"):
        return value[1:-1]
    return None


def _compile(pattern: str, option: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ConfigError(f"Invalid regex in '{option}': {pattern}\nError: {exc}") from exc


@dataclass(frozen=True)
class BranchResolver:
    """Extracts channel ids, versions and issue numbers from branch names."""

    config: Config

    def _extract(self, branch: str, template: Optional[str], option: str) -> Optional[str]:
        if not template:
            return None
        pattern = as_regex_pattern(template)
        if pattern is None:
            raise ConfigError(
                f'Config field "{option}" must contain a regex (enclosed in slashes). '
                f"Found: {template}"
            )
        regex = _compile(pattern, option)
        if regex.groups != 1:
            raise ConfigError(
                f'The pattern "{option}" is not applicable: {pattern}\n'
                f"There must be exactly one capturing group. Found {regex.groups}"
            )
        match = regex.search(branch)
        if match is None or match.group(1) is None:
            return None
        return match.group(1)

    def version(self, branch: str) -> Optional[str]:
        """Return the release version encoded in ``branch``, e.g. ``rel/3.40`` -> ``3.40``."""
        return self._extract(branch, self.config.branch_version_pattern, "branch_version_pattern")

    def issue(self, branch: str) -> Optional[str]:
        """Return the issue id encoded in ``branch``, e.g. ``SW-12-fix`` -> ``SW-12``."""
        return self._extract(branch, self.config.branch_issue_pattern, "branch_issue_pattern")

    def channel(self, branch: str) -> Optional[str]:
        """Return the first channel whose branch pattern matches ``branch``."""
        for channel_id, template in self.config.channels.items():
            if not template:
                # Channel can only be chosen explicitly.
                continue
            pattern = as_regex_pattern(template)
            if pattern is None:
                if branch == template:
                    return channel_id
                continue
            if _compile(pattern, f"channels.{channel_id}").search(branch):
                return channel_id
        return None
