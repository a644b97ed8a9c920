"""Core package exports for clpack."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as metadata_version
from typing import TYPE_CHECKING, Any

__all__ = ["__version__", "Changelog", "Release", "Store"]

try:
    __version__ = metadata_version("clpack")
except PackageNotFoundError:  # pragma: no cover - fallback for editable installs
    __version__ = "0.0.0"

if TYPE_CHECKING:  # pragma: no cover
    from .api import Changelog
    from .ledger import Release
    from .store import Store


def __getattr__(name: str) -> Any:  # pragma: no cover - simple delegation
    if name == "Changelog":
        from .api import Changelog as _Changelog

        return _Changelog
    if name == "Release":
        from .ledger import Release as _Release

        return _Release
    if name == "Store":
        from .store import Store as _Store

        return _Store
    raise AttributeError(f"module 'clpack' has no attribute {name!r}")
