"""Parser for SUMMARY.md, the file that lays out the chapters of a book.

The summary is read as a stream of Markdown events and interpreted with a
small recursive-descent grammar:

    summary           ::= title prefix_chapters numbered_chapters suffix_chapters
    title             ::= "# " TEXT | EPSILON
    prefix_chapters   ::= item*
    suffix_chapters   ::= item*
    numbered_chapters ::= part+
    part              ::= title dotted_item+
    dotted_item       ::= INDENT* DOT_POINT item
    item              ::= link | separator
    separator         ::= "---"
    link              ::= "[" TEXT "]" "(" TEXT ")"
    DOT_POINT         ::= "-" | "*"
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from markdown_it import MarkdownIt

from .sections import Link, PartTitle, SectionNumber, Separator, Summary, SummaryItem

log = logging.getLogger(__name__)

_TAG_NAMES = {"bullet_list": "list", "ordered_list": "list", "list_item": "item"}


class SummaryError(Exception):
    """Raised when a SUMMARY.md cannot be parsed."""


@dataclass(frozen=True)
class _Event:
    """One Markdown event: the start or end of an element, or a leaf."""

    type: str
    tag: str = ""
    level: int = 0
    href: str = ""
    content: str = ""
    line: int = 0
    column: int = 0
    children: tuple = ()


def parse_summary(text: str) -> Summary:
    """Parse the text of a SUMMARY.md into a :class:`Summary`."""
    return SummaryParser(text).parse()


def stringify_tokens(tokens: Iterable[Any]) -> str:
    """Strip the styling from Markdown tokens and return just their plain text."""
    return "".join(_plain_text(tokens))


def _plain_text(tokens: Iterable[Any]) -> Iterator[str]:
    for token in tokens:
        if token.type in ("text", "code_inline"):
            yield token.content
        elif token.type == "softbreak":
            yield " "
        if token.children:
            yield from _plain_text(token.children)


def _shift_numbers(items: list[SummaryItem], by: int) -> None:
    """Add ``by`` to the top-level component of every section number."""
    for item in items:
        if isinstance(item, Link):
            if item.number is not None:
                item.number[0] += by
            _shift_numbers(item.nested_items, by)


def _last_link(items: list[SummaryItem]) -> Link:
    for item in reversed(items):
        if isinstance(item, Link):
            return item
    raise SummaryError(
        "Unable to get last link because the list of SummaryItems doesn't contain any Links"
    )


class SummaryParser:
    """A recursive-descent parser over the Markdown events of a SUMMARY.md."""

    def __init__(self, text: str) -> None:
        self._lines = text.splitlines()
        md = MarkdownIt("commonmark")
        # Keep link destinations exactly as written.
        md.normalizeLink = lambda url: url  # type: ignore[method-assign]
        md.validateLink = lambda url: True  # type: ignore[method-assign]
        self._stream: Iterator[_Event] = self._events(md.parse(text), 0)
        self._back: _Event | None = None
        self._line = 0
        self._column = 0
        self._root_items = 0

    # -- event stream -------------------------------------------------------

    def _indent(self, line: int) -> int:
        if line >= len(self._lines):
            return 0
        text = self._lines[line]
        return len(text) - len(text.lstrip())

    def _events(self, tokens: Iterable[Any], line: int) -> Iterator[_Event]:
        for token in tokens:
            if token.map:
                line = token.map[0]
            if token.hidden:
                continue
            column = self._indent(line)
            kind = token.type
            if token.nesting == 1:
                base = kind[: -len("_open")]
                level = int(token.tag[1:]) if base == "heading" else 0
                href = str(token.attrGet("href") or "") if base == "link" else ""
                yield _Event("start", _TAG_NAMES.get(base, base), level, href, line=line, column=column)
            elif token.nesting == -1:
                base = kind[: -len("_close")]
                level = int(token.tag[1:]) if base == "heading" else 0
                yield _Event("end", _TAG_NAMES.get(base, base), level, line=line, column=column)
            elif kind == "inline":
                yield from self._events(token.children or (), line)
            elif kind == "hr":
                yield _Event("rule", line=line, column=column)
            elif kind in ("html_block", "html_inline"):
                yield _Event("html", content=token.content, line=line, column=column)
            elif kind in ("text", "code_inline", "softbreak", "hardbreak"):
                yield _Event(kind, content=token.content, line=line, column=column)
            elif kind in ("code_block", "fence"):
                yield _Event("start", "code_block", line=line, column=column)
                yield _Event("text", content=token.content, line=line, column=column)
                yield _Event("end", "code_block", line=line, column=column)
            elif kind == "image":
                yield _Event("start", "image", line=line, column=column)
                yield from self._events(token.children or (), line)
                yield _Event("end", "image", line=line, column=column)
            else:
                yield _Event(kind, content=token.content, line=line, column=column)

    def _next_event(self) -> _Event | None:
        if self._back is not None:
            event, self._back = self._back, None
            return event
        event = next(self._stream, None)
        if event is not None:
            self._line, self._column = event.line, event.column
        log.debug("Next event: %r", event)
        return event

    def _push_back(self, event: _Event) -> None:
        assert self._back is None, "only one event can be pushed back"
        self._back = event

    def _collect_until_end(self, tag: str, level: int = 0) -> list[_Event]:
        events = []
        for event in self._stream:
            if event.type == "end" and event.tag == tag and event.level == level:
                break
            events.append(event)
        else:
            log.debug("Reached end of stream without finding the end of %s", tag)
        return events

    def _error(self, message: str) -> SummaryError:
        return SummaryError(
            f"failed to parse SUMMARY.md line {self._line + 1}, "
            f"column {self._column}: {message}"
        )

    @staticmethod
    def _is_start(event: _Event | None, tag: str, level: int | None = None) -> bool:
        return (
            event is not None
            and event.type == "start"
            and event.tag == tag
            and (level is None or event.level == level)
        )

    # -- grammar ------------------------------------------------------------

    def parse(self) -> Summary:
        """Parse the whole summary."""
        title = self.parse_title()
        try:
            prefix = self.parse_affix(True)
        except SummaryError as err:
            raise SummaryError("There was an error parsing the prefix chapters") from err
        try:
            numbered = self.parse_parts()
        except SummaryError as err:
            raise SummaryError("There was an error parsing the numbered chapters") from err
        try:
            suffix = self.parse_affix(False)
        except SummaryError as err:
            raise SummaryError("There was an error parsing the suffix chapters") from err
        return Summary(
            title=title,
            prefix_chapters=prefix,
            numbered_chapters=numbered,
            suffix_chapters=suffix,
        )

    def parse_title(self) -> str | None:
        """Parse an optional level-one heading, skipping leading HTML."""
        while (event := self._next_event()) is not None:
            if self._is_start(event, "heading", 1):
                return stringify_tokens(self._collect_until_end("heading", 1))
            if event.type == "html":
                continue
            self._push_back(event)
            return None
        return None

    def parse_affix(self, is_prefix: bool) -> list[SummaryItem]:
        """Parse prefix (``is_prefix``) or suffix chapters."""
        items: list[SummaryItem] = []
        log.debug("Parsing %s items", "prefix" if is_prefix else "suffix")
        while (event := self._next_event()) is not None:
            if self._is_start(event, "list") or self._is_start(event, "heading", 1):
                if is_prefix:
                    self._push_back(event)
                    break
                raise self._error("Suffix chapters cannot be followed by a list")
            if self._is_start(event, "link"):
                items.append(self._parse_link(event.href))
            elif event.type == "rule":
                items.append(Separator())
        return items

    def parse_parts(self) -> list[SummaryItem]:
        """Parse the numbered chapters, split into optionally titled parts."""
        parts: list[SummaryItem] = []
        self._root_items = 0
        while (event := self._next_event()) is not None:
            if self._is_start(event, "paragraph"):
                self._push_back(event)
                break
            if self._is_start(event, "heading", 1):
                log.debug("Found a h1 in the SUMMARY")
                title: str | None = stringify_tokens(self._collect_until_end("heading", 1))
            else:
                self._push_back(event)
                title = None
            try:
                chapters = self.parse_numbered()
            except SummaryError as err:
                raise SummaryError("There was an error parsing the numbered chapters") from err
            if title is not None:
                parts.append(PartTitle(title))
            parts.extend(chapters)
        return parts

    def parse_numbered(self) -> list[SummaryItem]:
        """Parse one run of numbered chapters, continuing the running numbering."""
        items: list[SummaryItem] = []
        first = True
        while (event := self._next_event()) is not None:
            if self._is_start(event, "paragraph"):
                if not first:
                    self._push_back(event)
                    break
            elif self._is_start(event, "heading", 1):
                self._push_back(event)
                break
            elif self._is_start(event, "list"):
                self._push_back(event)
                chunk = self._parse_nested_numbered(SectionNumber())
                # After something like a rule the root sections restart at 1.
                _shift_numbers(chunk, self._root_items)
                self._root_items += len(chunk)
                items.extend(chunk)
            elif event.type == "start":
                log.debug("Skipping contents of %s", event.tag)
                while (inner := self._next_event()) is not None:
                    if inner.type == "end" and inner.tag == event.tag and inner.level == event.level:
                        break
            elif event.type == "rule":
                items.append(Separator())
            first = False
        return items

    def _parse_link(self, href: str) -> Link:
        href = href.replace("%20", " ")
        name = stringify_tokens(self._collect_until_end("link"))
        return Link(name=name, location=Path(href) if href else None)

    def _parse_nested_numbered(self, parent: SectionNumber) -> list[SummaryItem]:
        log.debug("Parsing numbered chapters at level %s", parent)
        items: list[SummaryItem] = []
        while (event := self._next_event()) is not None:
            if self._is_start(event, "item"):
                items.append(self._parse_nested_item(parent, len(items)))
            elif self._is_start(event, "list"):
                if not items:
                    continue
                last = _last_link(items)
                if last.number is None:
                    raise SummaryError("All numbered chapters have numbers")
                last.nested_items = self._parse_nested_numbered(last.number)
            elif event.type == "end" and event.tag == "list":
                break
        return items

    def _parse_nested_item(self, parent: SectionNumber, existing: int) -> SummaryItem:
        while True:
            event = self._next_event()
            if self._is_start(event, "paragraph"):
                continue
            if event is not None and self._is_start(event, "link"):
                link = self._parse_link(event.href)
                link.number = SectionNumber([*parent, existing + 1])
                log.debug(
                    "Found chapter: %s %s (%s)",
                    link.number,
                    link.name,
                    link.location if link.location is not None else "[draft]",
                )
                return link
            log.warning("Expected a start of a link, actually got %r", event)
            raise self._error(
                "The link items for nested chapters must only contain a hyperlink"
            )