"""Configuration helpers for clpack."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

import yaml

from .errors import ConfigError

CONFIG_FILENAME = "clpack.yaml"

DEFAULT_SECTIONS: tuple[str, ...] = ("Fixes", "Improvements", "New features", "Internal")
DEFAULT_CHANNELS: dict[str, str] = {"default": "/^(?:main|master)$/"}


def default_config_path(project_root: Path) -> Path:
    """Return the default config path for a project root."""
    return project_root / CONFIG_FILENAME


@dataclass
class Config:
    """Structured representation of ``clpack.yaml``."""

    # Folder managed by clpack, relative to the project root.
    data_folder: str = "changelog"
    default_channel: str = "default"
    changelog_file_default: str = "CHANGELOG.md"
    # Supports the placeholders {channel}, {Channel} and {CHANNEL}.
    changelog_file_channel: str = "CHANGELOG-{CHANNEL}.md"
    # Stripped from the changelog file and put back in front on every release.
    changelog_header: str = "# Changelog\n\n"
    # Supports the placeholders {VERSION} and {DATE}.
    release_header: str = "[{VERSION}] - {DATE}"
    header_prefix: str = "## "
    section_prefix: str = "### "
    date_format: str = "%Y-%m-%d"
    sections: list[str] = field(default_factory=lambda: list(DEFAULT_SECTIONS))
    # Channel id -> git branch name, or a regex enclosed in slashes.
    channels: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CHANNELS))
    branch_issue_pattern: Optional[str] = r"/^((?:SW-)?\d+)-.*/"
    branch_version_pattern: Optional[str] = r"/^rel\/([\d.]+)$/"

    @property
    def channel_ids(self) -> tuple[str, ...]:
        return tuple(self.channels)


@dataclass(frozen=True)
class AppContext:
    """Process-wide settings, built once and handed to every component."""

    root: Path
    config: Config
    binary_name: str = "clpack"

    @property
    def data_dir(self) -> Path:
        return self.root / self.config.data_folder


_STRING_OPTIONS = (
    "data_folder",
    "default_channel",
    "changelog_file_default",
    "changelog_file_channel",
    "changelog_header",
    "release_header",
    "header_prefix",
    "section_prefix",
    "date_format",
)
_OPTIONAL_PATTERN_OPTIONS = ("branch_issue_pattern", "branch_version_pattern")
_KNOWN_OPTIONS = frozenset(item.name for item in fields(Config))


def _parse_sections(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        raise ConfigError("Config option 'sections' must be a list of strings.")
    sections: list[str] = []
    for item in raw:
        if not isinstance(item, str) or not item.strip():
            raise ConfigError("Config option 'sections' must contain non-empty strings.")
        name = item.strip()
        if name in sections:
            raise ConfigError(f"Config option 'sections' lists '{name}' more than once.")
        sections.append(name)
    return sections


def _parse_channels(raw: Any) -> dict[str, str]:
    if not isinstance(raw, Mapping):
        raise ConfigError("Config option 'channels' must be a mapping of channel id to branch.")
    channels: dict[str, str] = {}
    for key, value in raw.items():
        channel_id = str(key).strip()
        if not channel_id:
            raise ConfigError("Config option 'channels' contains an empty channel id.")
        if "/" in channel_id or "\\" in channel_id or channel_id.startswith("."):
            raise ConfigError(f"Channel id '{channel_id}' cannot be used as a file name.")
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ConfigError(f"Branch pattern for channel '{channel_id}' must be a string.")
        channels[channel_id] = value
    if not channels:
        raise ConfigError("Config option 'channels' must define at least one channel.")
    return channels


def parse_config(raw: Mapping[str, Any]) -> Config:
    """Build a :class:`Config` from a parsed mapping, validating every option."""
    unknown = sorted(str(key) for key in raw if key not in _KNOWN_OPTIONS)
    if unknown:
        raise ConfigError(f"Unknown config option(s): {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for name in _STRING_OPTIONS:
        if name not in raw:
            continue
        value = raw[name]
        if not isinstance(value, str):
            raise ConfigError(f"Config option '{name}' must be a string.")
        values[name] = value
    for name in _OPTIONAL_PATTERN_OPTIONS:
        if name not in raw:
            continue
        value = raw[name]
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"Config option '{name}' must be a string or null.")
        values[name] = value or None
    if "sections" in raw:
        values["sections"] = _parse_sections(raw["sections"])
    if "channels" in raw:
        values["channels"] = _parse_channels(raw["channels"])

    config = Config(**values)
    if not config.data_folder.strip():
        raise ConfigError("Config option 'data_folder' cannot be empty.")
    if config.default_channel not in config.channels:
        raise ConfigError(
            f"Default channel '{config.default_channel}' is not listed in 'channels'."
        )
    if "{VERSION}" not in config.release_header:
        raise ConfigError("Config option 'release_header' must contain '{VERSION}'.")
    return config


def load_config(path: Path) -> Config:
    """Load the configuration from disk."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigError(f"Failed to load config file at {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file ({path}): {exc}") from exc
    if not isinstance(raw, MutableMapping):
        raise ConfigError(f"Config root must be a mapping ({path})")
    try:
        return parse_config(raw)
    except ConfigError as exc:
        raise ConfigError(f"{exc.message} ({path})") from exc


def load_project_config(project_root: Path, path: Optional[Path] = None) -> Config:
    """Load the project config, falling back to defaults when no file exists.

    An explicitly requested file that does not exist is an error.
    """
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Failed to load config file at {path}")
        return load_config(path)
    config_path = default_config_path(project_root)
    if config_path.exists():
        return load_config(config_path)
    return Config()


def dump_config(config: Config) -> dict[str, Any]:
    """Convert a Config into a plain dictionary suitable for YAML output."""
    return {
        "data_folder": config.data_folder,
        "default_channel": config.default_channel,
        "changelog_file_default": config.changelog_file_default,
        "changelog_file_channel": config.changelog_file_channel,
        "changelog_header": config.changelog_header,
        "release_header": config.release_header,
        "header_prefix": config.header_prefix,
        "section_prefix": config.section_prefix,
        "date_format": config.date_format,
        "sections": list(config.sections),
        "channels": dict(config.channels),
        "branch_issue_pattern": config.branch_issue_pattern,
        "branch_version_pattern": config.branch_version_pattern,
    }


def save_config(config: Config, path: Path) -> None:
    """Write the configuration to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(dump_config(config), handle, sort_keys=False, allow_unicode=True)
