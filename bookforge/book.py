"""The in-memory representation of a book and loading it from disk."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeAlias

from .sections import Link, PartTitle, SectionNumber, Separator, Summary, SummaryItem
from .summary import SummaryError, parse_summary

log = logging.getLogger(__name__)

_UTF8_BOM = b"\xef\xbb\xbf"


class BookError(Exception):
    """Raised when a book cannot be loaded from disk."""


@dataclass
class Chapter:
    """A chapter, usually backed by one Markdown file, with nested items.

    A chapter without a ``path`` is a draft: it has no source file and no content.
    """

    name: str = ""
    content: str = ""
    number: SectionNumber | None = None
    sub_items: list[BookItem] = field(default_factory=list)
    path: Path | None = None
    source_path: Path | None = None
    parent_names: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.path is not None and not isinstance(self.path, Path):
            self.path = Path(self.path)
        if self.source_path is not None and not isinstance(self.source_path, Path):
            self.source_path = Path(self.source_path)
        if self.number is not None and not isinstance(self.number, SectionNumber):
            self.number = SectionNumber(self.number)

    def is_draft_chapter(self) -> bool:
        """Whether the chapter has no source file."""
        return self.path is None

    def __str__(self) -> str:
        if self.number is not None:
            return f"{self.number} {self.name}"
        return self.name


BookItem: TypeAlias = Chapter | Separator | PartTitle


@dataclass
class Book:
    """A tree of chapters, separators and part titles."""

    sections: list[BookItem] = field(default_factory=list)

    def __iter__(self) -> Iterator[BookItem]:
        """Iterate depth-first over every item in the book."""
        pending: deque[BookItem] = deque(self.sections)
        while pending:
            item = pending.popleft()
            if isinstance(item, Chapter):
                pending.extendleft(reversed(item.sub_items))
            yield item

    def for_each_mut(self, func: Callable[[BookItem], object]) -> None:
        """Apply ``func`` to every item, visiting a chapter's children before it."""
        _apply(func, self.sections)

    def push_item(self, item: BookItem) -> Book:
        """Append an item to the top level of the book."""
        self.sections.append(item)
        return self


def _apply(func: Callable[[BookItem], object], items: list[BookItem]) -> None:
    for item in items:
        if isinstance(item, Chapter):
            _apply(func, item.sub_items)
        func(item)


def load_book(src_dir: str | Path, create_missing: bool = False) -> Book:
    """Load a book from its source directory, guided by its SUMMARY.md."""
    src_dir = Path(src_dir)
    summary_md = src_dir / "SUMMARY.md"
    try:
        text = summary_md.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise BookError(f"Couldn't open SUMMARY.md in {str(src_dir)!r} directory") from err

    try:
        summary = parse_summary(text)
    except SummaryError as err:
        raise BookError(f"Summary parsing failed for file={str(summary_md)!r}") from err

    if create_missing:
        try:
            _create_missing(src_dir, summary)
        except OSError as err:
            raise BookError("Unable to create missing chapters") from err

    return load_book_from_disk(summary, src_dir)


def _create_missing(src_dir: Path, summary: Summary) -> None:
    stack: list[SummaryItem] = list(summary.items())
    while stack:
        item = stack.pop()
        if not isinstance(item, Link):
            continue
        if item.location is not None:
            filename = src_dir / item.location
            if not filename.exists():
                filename.parent.mkdir(parents=True, exist_ok=True)
                log.debug("Creating missing file %s", filename)
                try:
                    with filename.open("w", encoding="utf-8", newline="") as handle:
                        handle.write(f"# {item.name}\n")
                except OSError as err:
                    raise OSError(f"Unable to create missing file: {filename}") from err
        stack.extend(item.nested_items)


def load_book_from_disk(summary: Summary, src_dir: str | Path) -> Book:
    """Load every chapter named in ``summary``, relative to ``src_dir``."""
    log.debug("Loading the book from disk")
    src_dir = Path(src_dir)
    return Book(sections=[load_summary_item(item, src_dir, []) for item in summary.items()])


def load_summary_item(
    item: SummaryItem, src_dir: str | Path, parent_names: list[str]
) -> BookItem:
    """Turn one summary item into the matching book item."""
    if isinstance(item, Separator):
        return Separator()
    if isinstance(item, PartTitle):
        return PartTitle(item.title)
    return load_chapter(item, src_dir, parent_names)


def load_chapter(link: Link, src_dir: str | Path, parent_names: list[str]) -> Chapter:
    """Load the chapter a link points at, together with its nested items."""
    src_dir = Path(src_dir)

    if link.location is not None:
        log.debug("Loading %s (%s)", link.name, link.location)
        location = link.location if link.location.is_absolute() else src_dir / link.location
        try:
            raw = location.read_bytes()
        except OSError as err:
            raise BookError(f"Chapter file not found, {link.location}") from err
        if raw.startswith(_UTF8_BOM):
            raw = raw[len(_UTF8_BOM):]
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as err:
            raise BookError(f'Unable to read "{link.name}" ({location})') from err
        try:
            relative = location.relative_to(src_dir)
        except ValueError as err:
            raise BookError(f"Chapter {location} is not inside the book at {src_dir}") from err
        chapter = Chapter(
            name=link.name,
            content=content,
            path=relative,
            source_path=relative,
            parent_names=list(parent_names),
        )
    else:
        chapter = Chapter(name=link.name, parent_names=list(parent_names))

    chapter.number = SectionNumber(link.number) if link.number is not None else None

    child_parents = [*parent_names, link.name]
    chapter.sub_items = [
        load_summary_item(sub, src_dir, child_parents) for sub in link.nested_items
    ]
    return chapter