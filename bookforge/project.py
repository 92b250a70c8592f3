"""Loading a book project from disk and setting up new ones."""

from __future__ import annotations

import copy
import logging
import tomllib
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from .book import Book, BookError, BookItem, load_book
from .pipeline import (
    PipelineError,
    PreprocessorSpec,
    RendererSpec,
    determine_preprocessors,
    determine_renderers,
)

log = logging.getLogger(__name__)

CONFIG_FILE = "book.toml"

_DEFAULTS: dict[str, dict[str, Any]] = {
    "book": {"authors": [], "language": "en", "multilingual": False, "src": "src"},
    "build": {
        "build-dir": "book",
        "create-missing": True,
        "use-default-preprocessors": True,
    },
}


class ProjectError(Exception):
    """Raised when a book project cannot be loaded or created."""


def _with_defaults(config: Mapping[str, Any] | None) -> dict[str, Any]:
    """A copy of ``config`` with the ``book`` and ``build`` defaults filled in."""
    merged: dict[str, Any] = copy.deepcopy(dict(config or {}))
    for section, defaults in _DEFAULTS.items():
        given = merged.get(section, {})
        if not isinstance(given, Mapping):
            raise ProjectError(f"Expected the {section} section of the config to be a table")
        merged[section] = {**copy.deepcopy(defaults), **given}
    return merged


def _toml_ready(value: Any) -> Any:
    """Drop ``None`` values and turn paths into strings so TOML can hold them."""
    if isinstance(value, Mapping):
        return {str(k): _toml_ready(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_toml_ready(v) for v in value if v is not None]
    if isinstance(value, Path):
        return str(value)
    return value


def _read_config(location: Path) -> dict[str, Any]:
    log.debug("Loading config from %s", location)
    try:
        with location.open("rb") as handle:
            return tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as err:
        raise ProjectError(f"Unable to load the config from {location}") from err


@dataclass
class BookProject:
    """A book together with its root directory, configuration and build plan."""

    root: Path
    config: dict[str, Any]
    book: Book = field(default_factory=Book)
    renderers: list[RendererSpec] = field(default_factory=list)
    preprocessors: list[PreprocessorSpec] = field(default_factory=list)

    @classmethod
    def load(cls, root: str | Path) -> BookProject:
        """Load a book from its root directory, reading ``book.toml`` if present."""
        root = Path(root)
        if (root / "book.json").exists():
            log.warning("It appears you are still using book.json for configuration.")
            log.warning("This format is no longer used, so you should migrate to the")
            log.warning("book.toml format.")

        location = root / CONFIG_FILE
        config = _read_config(location) if location.exists() else {}

        html = config.get("output", {})
        html = html.get("html") if isinstance(html, Mapping) else None
        if isinstance(html, Mapping) and "google-analytics" in html:
            log.warning(
                "The output.html.google-analytics field has been deprecated; "
                "it will be removed in a future release."
            )

        return cls.load_with_config(root, config)

    @classmethod
    def load_with_config(cls, root: str | Path, config: Mapping[str, Any]) -> BookProject:
        """Load a book from its root directory using the given configuration."""
        root = Path(root)
        config = _with_defaults(config)
        src_dir = root / config["book"]["src"]
        try:
            book = load_book(src_dir, bool(config["build"]["create-missing"]))
        except BookError as err:
            raise ProjectError(f"Unable to load the book at {root}: {err}") from err
        try:
            renderers = determine_renderers(config)
            preprocessors = determine_preprocessors(config)
        except PipelineError as err:
            raise ProjectError(str(err)) from err
        return cls(
            root=root,
            config=config,
            book=book,
            renderers=renderers,
            preprocessors=preprocessors,
        )

    def source_dir(self) -> Path:
        """The directory holding the book's source files."""
        return self.root / self.config["book"]["src"]

    def build_dir_for(self, backend_name: str) -> Path:
        """Where a backend puts its output.

        With a single renderer this is the build directory itself; with more,
        each renderer gets a sub-directory named after it.
        """
        build_dir = self.root / self.config["build"]["build-dir"]
        if len(self.renderers) <= 1:
            return build_dir
        return build_dir / backend_name

    def __iter__(self) -> Iterator[BookItem]:
        """Iterate depth-first over every item in the book."""
        return iter(self.book)


class BookBuilder:
    """Sets up the directory structure and stub files of a new book."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.config: dict[str, Any] = _with_defaults({})
        self._gitignore = False

    def with_config(self, config: Mapping[str, Any]) -> BookBuilder:
        """Use ``config`` for the new book."""
        self.config = _with_defaults(config)
        return self

    def create_gitignore(self, create: bool) -> BookBuilder:
        """Choose whether a ``.gitignore`` is written."""
        self._gitignore = bool(create)
        return self

    def build(self) -> BookProject:
        """Create the book on disk and load it."""
        log.info("Creating a new book with stub content")
        try:
            self._create_directory_structure()
        except OSError as err:
            raise ProjectError("Unable to create directory structure") from err
        try:
            self._create_stub_files()
        except OSError as err:
            raise ProjectError("Unable to create stub files") from err
        if self._gitignore:
            try:
                self._write_gitignore()
            except OSError as err:
                raise ProjectError("Unable to create .gitignore") from err
        self._write_book_toml()

        try:
            return BookProject.load(self.root)
        except ProjectError as err:
            raise ProjectError(f"The newly created book could not be loaded: {err}") from err

    def _src_dir(self) -> Path:
        return self.root / self.config["book"]["src"]

    def _create_directory_structure(self) -> None:
        log.debug("Creating directory tree")
        self.root.mkdir(parents=True, exist_ok=True)
        self._src_dir().mkdir(parents=True, exist_ok=True)
        (self.root / self.config["build"]["build-dir"]).mkdir(parents=True, exist_ok=True)

    def _create_stub_files(self) -> None:
        log.debug("Creating example book contents")
        src_dir = self._src_dir()
        summary = src_dir / "SUMMARY.md"
        if summary.exists():
            log.debug("Existing summary found, no need to create stub files.")
            return
        summary.write_text("# Summary\n\n- [Chapter 1](./chapter_1.md)\n", encoding="utf-8")
        (src_dir / "chapter_1.md").write_text("# Chapter 1\n", encoding="utf-8")

    def _write_gitignore(self) -> None:
        log.debug("Creating .gitignore")
        (self.root / ".gitignore").write_text(
            f"{self.config['build']['build-dir']}\n", encoding="utf-8"
        )

    def _write_book_toml(self) -> None:
        log.debug("Writing book.toml")
        try:
            text = tomli_w.dumps(_toml_ready(self.config))
        except (TypeError, ValueError) as err:
            raise ProjectError("Unable to serialize the config") from err
        try:
            (self.root / CONFIG_FILE).write_text(text, encoding="utf-8")
        except OSError as err:
            raise ProjectError("Unable to write config to book.toml") from err