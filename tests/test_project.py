import tomllib
from pathlib import Path

import pytest

from bookforge.book import Chapter
from bookforge.project import BookBuilder, BookProject, ProjectError


def _write_book(root: Path, summary: str, files: dict[str, str], toml: str | None = None) -> None:
    src = root / "src"
    src.mkdir(parents=True)
    (src / "SUMMARY.md").write_text(summary, encoding="utf-8")
    for name, content in files.items():
        (src / name).write_text(content, encoding="utf-8")
    if toml is not None:
        (root / "book.toml").write_text(toml, encoding="utf-8")


def test_builder_creates_stub_book(tmp_path):
    project = BookBuilder(tmp_path / "mybook").build()
    src = tmp_path / "mybook" / "src"
    assert (src / "SUMMARY.md").read_text() == "# Summary\n\n- [Chapter 1](./chapter_1.md)\n"
    assert (src / "chapter_1.md").read_text() == "# Chapter 1\n"
    chapters = [item for item in project if isinstance(item, Chapter)]
    assert [c.name for c in chapters] == ["Chapter 1"]
    assert chapters[0].number == [1]
    assert chapters[0].content == "# Chapter 1\n"


def test_builder_writes_loadable_book_toml(tmp_path):
    root = tmp_path / "b"
    BookBuilder(root).with_config({"book": {"title": "My Title"}}).build()
    with (root / "book.toml").open("rb") as handle:
        written = tomllib.load(handle)
    assert written["book"]["title"] == "My Title"
    assert written["book"]["src"] == "src"
    assert written["build"]["build-dir"] == "book"
    reloaded = BookProject.load(root)
    assert reloaded.config["book"]["title"] == "My Title"


def test_builder_gitignore_lists_build_dir(tmp_path):
    root = tmp_path / "b"
    BookBuilder(root).create_gitignore(True).build()
    assert (root / ".gitignore").read_text() == "book\n"


def test_builder_without_gitignore(tmp_path):
    root = tmp_path / "b"
    BookBuilder(root).create_gitignore(False).build()
    assert not (root / ".gitignore").exists()


def test_builder_keeps_existing_summary(tmp_path):
    root = tmp_path / "b"
    _write_book(root, "- [Intro](./intro.md)\n", {"intro.md": "hello"})
    project = BookBuilder(root).build()
    assert not (root / "src" / "chapter_1.md").exists()
    assert [c.name for c in project if isinstance(c, Chapter)] == ["Intro"]


def test_builder_creates_build_dir(tmp_path):
    root = tmp_path / "b"
    BookBuilder(root).build()
    assert (root / "book").is_dir()


def test_load_without_config_uses_defaults(tmp_path):
    _write_book(tmp_path, "- [A](./a.md)\n", {"a.md": "x"})
    project = BookProject.load(tmp_path)
    assert project.source_dir() == tmp_path / "src"
    assert project.build_dir_for("html") == tmp_path / "book"
    assert [r.name for r in project.renderers] == ["html"]
    assert [p.name for p in project.preprocessors] == ["index", "links"]


def test_build_dir_for_multiple_renderers(tmp_path):
    _write_book(
        tmp_path,
        "- [A](./a.md)\n",
        {"a.md": "x"},
        "[output.html]\n\n[output.markdown]\n",
    )
    project = BookProject.load(tmp_path)
    assert len(project.renderers) == 2
    assert project.build_dir_for("html") == tmp_path / "book" / "html"
    assert project.build_dir_for("markdown") == tmp_path / "book" / "markdown"


def test_load_with_config_custom_src(tmp_path):
    (tmp_path / "text").mkdir()
    (tmp_path / "text" / "SUMMARY.md").write_text("- [A](./a.md)\n")
    (tmp_path / "text" / "a.md").write_text("content")
    project = BookProject.load_with_config(tmp_path, {"book": {"src": "text"}})
    assert project.source_dir() == tmp_path / "text"
    chapter = next(iter(project))
    assert chapter.content == "content"


def test_iteration_is_depth_first(tmp_path):
    _write_book(
        tmp_path,
        "- [A](./a.md)\n  - [B](./b.md)\n- [C](./c.md)\n",
        {"a.md": "a", "b.md": "b", "c.md": "c"},
    )
    project = BookProject.load(tmp_path)
    assert [str(item) for item in project] == ["1. A", "1.1. B", "2. C"]


def test_create_missing_creates_chapters(tmp_path):
    _write_book(tmp_path, "- [Missing](./missing.md)\n", {})
    project = BookProject.load(tmp_path)
    assert (tmp_path / "src" / "missing.md").read_text() == "# Missing\n"
    assert next(iter(project)).content == "# Missing\n"


def test_missing_chapter_without_create_missing_fails(tmp_path):
    _write_book(
        tmp_path, "- [Missing](./missing.md)\n", {}, "[build]\ncreate-missing = false\n"
    )
    with pytest.raises(ProjectError):
        BookProject.load(tmp_path)


def test_missing_summary_fails(tmp_path):
    with pytest.raises(ProjectError):
        BookProject.load(tmp_path)


def test_invalid_toml_fails(tmp_path):
    _write_book(tmp_path, "- [A](./a.md)\n", {"a.md": "x"}, "[book\n")
    with pytest.raises(ProjectError):
        BookProject.load(tmp_path)


def test_cyclic_preprocessors_fail(tmp_path):
    _write_book(
        tmp_path,
        "- [A](./a.md)\n",
        {"a.md": "x"},
        '[preprocessor.links]\nbefore = [ "index" ]\n\n[preprocessor.index]\nbefore = [ "links" ]\n',
    )
    with pytest.raises(ProjectError):
        BookProject.load(tmp_path)


def test_custom_preprocessor_is_loaded(tmp_path):
    _write_book(
        tmp_path,
        "- [A](./a.md)\n",
        {"a.md": "x"},
        '[preprocessor.random]\ncommand = "python random.py"\n',
    )
    project = BookProject.load(tmp_path)
    commands = {p.name: p.command for p in project.preprocessors}
    assert commands["random"] == "python random.py"
    assert commands["links"] is None


def test_bad_section_type_fails(tmp_path):
    with pytest.raises(ProjectError):
        BookBuilder(tmp_path).with_config({"book": "not a table"})