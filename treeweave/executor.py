"""
executor.py

Responsibility: own a namespace of named Jinja2 templates that share one set
of extension functions.

- Templates are registered by name (usually a filesystem path); registering a
  name again replaces the earlier source.
- Sources are syntax-checked when registered.
- Because the namespace is the loader mapping, `{% include %}` and
  `{% extends %}` can reach any registered name.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateNotFound, TemplateSyntaxError

from treeweave.funcs import DEFAULT_FUNCS

logger = logging.getLogger(__name__)

# Name used for literal strings such as path segments.
LITERAL_TEMPLATE_NAME = "__literal__"

# Repository metadata that a cloned tree carries but never renders.
IGNORED_NAMES = frozenset({".git"})


class ExecutorError(RuntimeError):
    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class TemplateParseError(ExecutorError):
    pass


class TemplateRenderError(ExecutorError):
    pass


def template_name(path: str | Path) -> str:
    return Path(path).as_posix()


class Executor:
    def __init__(self, funcs: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self._sources: dict[str, str] = {}
        self.env = Environment(
            loader=DictLoader(self._sources),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.add_funcs(DEFAULT_FUNCS)
        if funcs:
            self.add_funcs(funcs)

    def add_funcs(self, funcs: Mapping[str, Callable[..., Any]]) -> None:
        """
        Expose `funcs` as template globals, and as filters where Jinja2 has no
        built-in filter of that name.
        """
        self.env.globals.update(funcs)
        for name, fn in funcs.items():
            if name == "default" or name not in self.env.filters:
                self.env.filters[name] = fn

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    def template_names(self) -> list[str]:
        return sorted(self._sources)

    def register(self, name: str, source: str) -> None:
        try:
            self.env.parse(source, name=name)
        except TemplateSyntaxError as e:
            raise TemplateParseError(name, f"failed to parse template {name}: {e}") from e
        self._sources[name] = source

    def register_path(self, path: str | Path) -> list[str]:
        """
        Register the file at `path`, or every file below it when it is a directory.

        Returns the registered template names. Files in a directory that are not
        UTF-8 text are skipped, as is `.git`.
        """
        root = Path(path)
        if not root.is_dir():
            try:
                source = root.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise ExecutorError(template_name(root), f"failed to read template {root}: {e}") from e
            name = template_name(root)
            self.register(name, source)
            return [name]

        names: list[str] = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_NAMES)
            for filename in sorted(f for f in filenames if f not in IGNORED_NAMES):
                file_path = Path(dirpath) / filename
                try:
                    source = file_path.read_text(encoding="utf-8")
                except UnicodeDecodeError:
                    logger.debug("Skipping non-text file %s", file_path)
                    continue
                except OSError as e:
                    raise ExecutorError(template_name(file_path), f"failed to read template {file_path}: {e}") from e
                name = template_name(file_path)
                self.register(name, source)
                names.append(name)
        return names

    def render(self, name: str, data: Mapping[str, Any] | None = None) -> str:
        try:
            template = self.env.get_template(name)
        except TemplateNotFound as e:
            raise TemplateRenderError(name, f"template {name} is not defined") from e
        try:
            return template.render(dict(data or {}))
        except Exception as e:  # noqa: BLE001 - surface extension failures as render errors
            raise TemplateRenderError(name, f"failed to execute template {name}: {e}") from e

    def render_string(self, literal: str, data: Mapping[str, Any] | None = None) -> str:
        self.register(LITERAL_TEMPLATE_NAME, literal)
        return self.render(LITERAL_TEMPLATE_NAME, data)

    def render_fragment(
        self,
        fragment: str,
        data: Mapping[str, Any] | None = None,
        within: Iterable[str] = (),
    ) -> str:
        """
        Render a fragment: a template registered as `fragment`, or else the
        first `{% block fragment %}` found in `within` (then the whole namespace).
        """
        if fragment in self._sources:
            return self.render(fragment, data)

        within = [n for n in within if n in self._sources]
        candidates = within + [n for n in self.template_names() if n not in within]
        for name in candidates:
            template = self.env.get_template(name)
            block = template.blocks.get(fragment)
            if block is None:
                continue
            try:
                return self.env.concat(block(template.new_context(dict(data or {}))))
            except Exception as e:  # noqa: BLE001
                raise TemplateRenderError(fragment, f"failed to execute block {fragment} of {name}: {e}") from e

        raise TemplateRenderError(fragment, f"template or block {fragment} is not defined")


def _raise(err: OSError) -> None:
    raise ExecutorError(template_name(err.filename or ""), f"failed to walk directory: {err}") from err
