"""Release rendering.

Entry files are free-form Markdown. Heading lines (``# Fixes``) switch the
current section and every other non-blank line belongs to the section that is
active at that point. Text before the first heading lands in the unlabelled
section, whose name is the empty string.

Sections are recomputed from the entry files on every render and never
stored, so re-rendering an old release reproduces the same grouping.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Mapping, Optional, Sequence

from .config import Config
from .ledger import Release
from .utils import format_date

UNLABELLED_SECTION = ""

EntryReader = Callable[[str], str]


def parse_heading(line: str) -> Optional[str]:
    """Return the section name if ``line`` is a heading, otherwise None."""
    if not line.startswith("#"):
        return None
    return line.lstrip("#").strip()


def collect_sections(
    texts: Iterable[str], into: Optional[dict[str, list[str]]] = None
) -> dict[str, list[str]]:
    """Group the lines of ``texts`` by section, in first-seen order."""
    sections: dict[str, list[str]] = into if into is not None else {}
    for text in texts:
        current = UNLABELLED_SECTION
        for line in text.splitlines():
            if not line.strip():
                continue
            heading = parse_heading(line)
            if heading is not None:
                current = heading
                continue
            sections.setdefault(current, []).append(line)
    return sections


def order_sections(
    collected: Mapping[str, Sequence[str]], canonical: Sequence[str]
) -> list[tuple[str, list[str]]]:
    """Return non-empty sections: unlabelled first, then configured, then leftovers."""
    ordered: list[tuple[str, list[str]]] = []
    if collected.get(UNLABELLED_SECTION):
        ordered.append((UNLABELLED_SECTION, list(collected[UNLABELLED_SECTION])))
    for name in canonical:
        lines = collected.get(name)
        if lines:
            ordered.append((name, list(lines)))
    known = set(canonical) | {UNLABELLED_SECTION}
    for name, lines in collected.items():
        if name in known or not lines:
            continue
        ordered.append((name, list(lines)))
    return ordered


def format_release_header(config: Config, version: str, today: Optional[date] = None) -> str:
    """Substitute ``{VERSION}`` and ``{DATE}`` into the configured release header."""
    header = config.release_header.replace("{VERSION}", version)
    if "{DATE}" in header:
        header = header.replace("{DATE}", format_date(config.date_format, today))
    return header


@dataclass(frozen=True)
class ReleaseRenderer:
    """Turns a release plus its entry files into a changelog fragment."""

    config: Config

    def sections(self, release: Release, read_entry: EntryReader) -> list[tuple[str, list[str]]]:
        # Read everything up front so a missing entry fails before any output.
        texts = [read_entry(name) for name in release.entries]
        return order_sections(collect_sections(texts), self.config.sections)

    def render(
        self,
        release: Release,
        read_entry: EntryReader,
        *,
        today: Optional[date] = None,
    ) -> str:
        """Return the Markdown fragment for ``release``.

        Each block ends with a blank line, so fragments can be stacked on top
        of each other without further joining.
        """
        blocks = [
            self.config.header_prefix + format_release_header(self.config, release.version, today)
        ]
        for name, lines in self.sections(release, read_entry):
            body = "\n".join(lines)
            if name == UNLABELLED_SECTION:
                blocks.append(body)
            else:
                blocks.append(f"{self.config.section_prefix}{name}\n\n{body}")
        return "".join(f"{block}\n\n" for block in blocks)
