"""Choosing the renderers and preprocessors a book is built with.

The configuration is the parsed ``book.toml`` as nested mappings. Renderers
come from the ``output`` table and preprocessors from the ``preprocessor``
table. Preprocessors are ordered by their ``before``/``after`` constraints.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)

BUILTIN_RENDERERS = ("html", "markdown")
DEFAULT_PREPROCESSORS = ("links", "index")
COMMAND_PREFIX = "bookforge-"


class PipelineError(Exception):
    """Raised when the renderers or preprocessors cannot be worked out."""


@dataclass(frozen=True)
class RendererSpec:
    """A renderer to run; ``command`` is ``None`` for a built-in renderer."""

    name: str
    command: str | None = None

    @property
    def is_builtin(self) -> bool:
        return self.command is None


@dataclass(frozen=True)
class PreprocessorSpec:
    """A preprocessor to run; ``command`` is ``None`` for a built-in one."""

    name: str
    command: str | None = None

    @property
    def is_builtin(self) -> bool:
        return self.command is None


def _table(config: Mapping[str, Any], key: str) -> Mapping[str, Any] | None:
    value = config.get(key)
    return value if isinstance(value, Mapping) else None


def _use_default_preprocessors(config: Mapping[str, Any]) -> bool:
    build = _table(config, "build") or {}
    return bool(build.get("use-default-preprocessors", True))


def custom_command(key: str, table: Any) -> str:
    """The ``command`` of a table, falling back to the key with a prefix."""
    if isinstance(table, Mapping):
        command = table.get("command")
        if isinstance(command, str):
            return command
    return f"{COMMAND_PREFIX}{key}"


def determine_renderers(config: Mapping[str, Any]) -> list[RendererSpec]:
    """The renderers named in the ``output`` table, or HTML if there are none."""
    output = _table(config, "output") or {}
    renderers = [
        RendererSpec(key) if key in BUILTIN_RENDERERS else RendererSpec(key, custom_command(key, table))
        for key, table in sorted(output.items())
    ]
    return renderers or [RendererSpec("html")]


class _TopologicalSort:
    """Orders names so that every name comes after those it depends on."""

    def __init__(self) -> None:
        self._preds: dict[str, set[str]] = {}

    def insert(self, name: str) -> None:
        self._preds.setdefault(name, set())

    def add_dependency(self, prec: str, succ: str) -> None:
        self.insert(prec)
        self.insert(succ)
        self._preds[succ].add(prec)

    def pop_all(self) -> list[str]:
        ready = [name for name, preds in self._preds.items() if not preds]
        for name in ready:
            del self._preds[name]
        for preds in self._preds.values():
            preds.difference_update(ready)
        return ready

    def __len__(self) -> int:
        return len(self._preds)


def _string_list(value: Any, name: str, key: str) -> Iterable[str]:
    if not isinstance(value, list):
        raise PipelineError(f"Expected preprocessor.{name}.{key} to be an array")
    for entry in value:
        if not isinstance(entry, str):
            raise PipelineError(f"Expected preprocessor.{name}.{key} to contain strings")
        yield entry


def determine_preprocessors(config: Mapping[str, Any]) -> list[PreprocessorSpec]:
    """The preprocessors to run, in an order honouring their constraints."""
    use_defaults = _use_default_preprocessors(config)
    graph = _TopologicalSort()
    if use_defaults:
        for name in DEFAULT_PREPROCESSORS:
            graph.insert(name)

    table = _table(config, "preprocessor") or {}

    def exists(name: str) -> bool:
        return (use_defaults and name in DEFAULT_PREPROCESSORS) or name in table

    for name, entry in table.items():
        graph.insert(name)
        entry = entry if isinstance(entry, Mapping) else {}

        if "before" in entry:
            for after in _string_list(entry["before"], name, "before"):
                if exists(after):
                    graph.add_dependency(name, after)
                else:
                    log.warning(
                        'preprocessor.%s.after contains "%s", which was not found', name, after
                    )

        if "after" in entry:
            for before in _string_list(entry["after"], name, "after"):
                if exists(before):
                    graph.add_dependency(before, name)
                else:
                    log.warning(
                        'preprocessor.%s.before contains "%s", which was not found', name, before
                    )

    preprocessors: list[PreprocessorSpec] = []
    while names := graph.pop_all():
        # Ties are broken by code-point order so the result is stable.
        for name in sorted(names):
            if name in DEFAULT_PREPROCESSORS:
                preprocessors.append(PreprocessorSpec(name))
            else:
                preprocessors.append(PreprocessorSpec(name, custom_command(name, table[name])))

    if len(graph):
        raise PipelineError("Cyclic dependency detected in preprocessors")
    return preprocessors


def preprocessor_should_run(
    name: str,
    supports_renderer: Callable[[str], bool],
    renderer_name: str,
    config: Mapping[str, Any],
) -> bool:
    """Whether the named preprocessor runs for the renderer.

    Default preprocessors defer to ``supports_renderer`` when they are enabled;
    otherwise an explicit ``preprocessor.<name>.renderers`` list decides, and
    ``supports_renderer`` is the fallback.
    """
    if _use_default_preprocessors(config) and name in DEFAULT_PREPROCESSORS:
        return bool(supports_renderer(renderer_name))

    entry = (_table(config, "preprocessor") or {}).get(name)
    if isinstance(entry, Mapping):
        explicit = entry.get("renderers")
        if isinstance(explicit, list):
            return any(isinstance(r, str) and r == renderer_name for r in explicit)

    return bool(supports_renderer(renderer_name))