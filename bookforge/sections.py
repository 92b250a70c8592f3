"""Data types describing the layout of a book as declared in SUMMARY.md."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from itertools import chain
from pathlib import Path
from typing import TypeAlias


class SectionNumber(list):
    """A dotted section number such as ``1.2.3.``, stored as a list of ints."""

    def __init__(self, parts: Iterable[int] = ()) -> None:
        super().__init__(int(part) for part in parts)

    def __str__(self) -> str:
        if not self:
            return "0"
        return "".join(f"{part}." for part in self)

    def __repr__(self) -> str:
        return f"SectionNumber({list(self)!r})"


@dataclass
class Link:
    """An entry of the summary pointing at a chapter, possibly with nested items.

    A ``location`` of ``None`` marks a draft chapter with no source file.
    """

    name: str = ""
    location: Path | None = field(default_factory=lambda: Path(""))
    number: SectionNumber | None = None
    nested_items: list[SummaryItem] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.location is not None and not isinstance(self.location, Path):
            self.location = Path(self.location)
        if self.number is not None and not isinstance(self.number, SectionNumber):
            self.number = SectionNumber(self.number)


@dataclass(frozen=True)
class Separator:
    """A horizontal rule (``---``) between summary items."""


@dataclass
class PartTitle:
    """The title of a part grouping the numbered chapters that follow it."""

    title: str


SummaryItem: TypeAlias = Link | Separator | PartTitle


@dataclass
class Summary:
    """The parsed SUMMARY.md: an optional title and three runs of items."""

    title: str | None = None
    prefix_chapters: list[SummaryItem] = field(default_factory=list)
    numbered_chapters: list[SummaryItem] = field(default_factory=list)
    suffix_chapters: list[SummaryItem] = field(default_factory=list)

    def items(self) -> Iterator[SummaryItem]:
        """Yield the top-level items: prefix, then numbered, then suffix."""
        return chain(self.prefix_chapters, self.numbered_chapters, self.suffix_chapters)