# bookforge

bookforge turns a directory of Markdown files into an in-memory book. A
`SUMMARY.md` file is the table of contents and sets the book's layout.
The package also works out which renderers and preprocessors a book's
`book.toml` asks for, and it can set up the files for a new book.

## Installation

```
pip install bookforge
```

## The SUMMARY.md format

```markdown
# Summary

[Introduction](intro.md)

# Part One

- [Getting started](start.md)
    - [Installing](install.md)
- [Draft chapter]()

---

[Appendix](appendix.md)
```

* A level-one heading at the top, if present, becomes the summary's title.
  HTML comments before it are skipped.
* Links before the first list are **prefix chapters**. They get no numbers.
* List items are **numbered chapters**. They can be nested. Numbering carries
  on across separators (`---`) and across part titles (a level-one heading
  such as `# Part One`). Level-two headings between lists are skipped.
* Links after the list are **suffix chapters**. A list after the suffix
  chapters is an error.
* A link with an empty target is a **draft chapter**. It has no file.
* `%20` in a link target is read as a space.

## Parsing a summary

```python
from bookforge.summary import parse_summary

with open("src/SUMMARY.md", encoding="utf-8") as handle:
    summary = parse_summary(handle.read())

print(summary.title)
for item in summary.items():      # prefix, then numbered, then suffix items
    print(item)
```

A summary is built from the types in `bookforge.sections`:

* `Link`, with `name`, `location` (a `Path`, or `None` for a draft),
  `number` and `nested_items`
* `Separator`
* `PartTitle`
* `SectionNumber`, a list of ints whose `str()` is dotted, e.g. `"1.2."`

`parse_summary` raises `SummaryError` when the file is malformed. The error
says which run of chapters failed, and the exception it was raised from gives
the line and column. `SummaryParser` exposes the single steps:
`parse_title`, `parse_affix`, `parse_parts` and `parse_numbered`.

## Loading a book

```python
from bookforge.book import load_book

book = load_book("my-book/src", create_missing=True)
for item in book:          # depth-first over chapters, separators and part titles
    print(item)
```

With `create_missing=True`, each chapter file named in `SUMMARY.md` that does
not exist yet is created with a `# <name>` heading. Chapter files are read as
UTF-8, and a leading byte-order mark is dropped. A `Chapter` has `name`,
`content`, `number`, `sub_items`, `path`, `source_path` and `parent_names`.
`is_draft_chapter()` is true when it has no path. `Book.for_each_mut(func)`
calls `func` on every item, children before their chapter, so you can change
chapters in place. `Book.push_item(item)` appends a top-level item. Files that
are missing or unreadable raise `BookError`.

## Projects and configuration

```python
from bookforge.project import BookBuilder, BookProject

project = BookBuilder("my-book").create_gitignore(True).build()
# creates src/SUMMARY.md, src/chapter_1.md, book/, .gitignore and book.toml

project = BookProject.load("my-book")
print(project.source_dir())
print(project.build_dir_for("html"))
for item in project:
    print(item)
```

`BookProject.load` reads `book.toml` if it exists. `load_with_config` takes
the configuration as a mapping instead. The `[book]` and `[build]` tables get
these defaults: `src = "src"`, `build-dir = "book"`, `create-missing = true`
and `use-default-preprocessors = true`. `build_dir_for` returns the build
directory itself when there is a single renderer. With more renderers it
returns a sub-directory named after the renderer. Errors raise `ProjectError`.

`bookforge.pipeline` decides which renderers and preprocessors to use:

* `determine_renderers(config)` returns a `RendererSpec` for each key of
  `[output]`, in sorted order. `html` and `markdown` are built-in. Any other
  key gets its `command`, or `bookforge-<key>` if it has none. With no
  `[output]` table the result is a single `html` renderer.
* `determine_preprocessors(config)` returns `PreprocessorSpec` entries: the
  built-in `links` and `index` (unless `use-default-preprocessors = false`),
  plus each `[preprocessor.<name>]` table. Entries are ordered by their
  `before = [...]` and `after = [...]` lists, and ties are sorted by name.
  A malformed list or a dependency cycle raises `PipelineError`.
* `preprocessor_should_run(name, supports_renderer, renderer_name, config)`
  applies a `renderers = [...]` list if there is one. Otherwise it asks
  `supports_renderer`.

## What bookforge does not do

bookforge loads and describes books. It does not render them to HTML or any
other format. It does not run preprocessors or external commands. It has no
command-line program, no web server and no file watcher, and it does not copy
a theme into new books.