"""
walker.py

Responsibility: Deterministically render an input directory tree into an output directory.

Rules:
- Walk entries depth-first in sorted order to ensure deterministic output.
- Every entry's base name is itself a template; it is rendered before the entry is used.
- A rendered name that is empty or starts with `-` is skipped (with its subtree
  for directories).
- The input root never appears as a segment in the output.
- For UTF-8 text files, the content is registered with the executor and rendered.
- Non-text/binary files are copied byte-for-byte.
- Permission modes are carried over from the input entries.
- `.git` entries are never walked.

This module intentionally does NOT know about git, remote references, or CLI parsing.
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from treeweave.executor import IGNORED_NAMES, Executor, ExecutorError, TemplateParseError, template_name

logger = logging.getLogger(__name__)

SKIP_PREFIX = "-"


class GenerateError(RuntimeError):
    def __init__(self, stage: str, path: str | Path, detail: str = "") -> None:
        msg = f"error {stage} {path}"
        super().__init__(f"{msg}: {detail}" if detail else msg)
        self.stage = stage
        self.path = Path(path)


@dataclass(frozen=True)
class GenerateResult:
    rendered_files: int
    copied_files: int
    directories: int


@dataclass
class _Tally:
    rendered_files: int = 0
    copied_files: int = 0
    directories: int = 0


def is_skipped(rendered_name: str) -> bool:
    return rendered_name == "" or rendered_name.startswith(SKIP_PREFIX)


def _mode(st: os.stat_result) -> int:
    return stat.S_IMODE(st.st_mode)


def _render_name(executor: Executor, name: str, data: Mapping[str, Any], src: Path) -> str:
    try:
        return executor.render_string(name, data)
    except TemplateParseError as e:
        raise GenerateError("parsing", src, f"path template: {e}") from e
    except ExecutorError as e:
        raise GenerateError("rendering", src, f"path template: {e}") from e


def render_file(executor: Executor, src: Path, dst: Path, data: Mapping[str, Any]) -> bool:
    """
    Render (or copy, for binary content) `src` to `dst` with `src`'s mode.

    Returns True when the content was rendered as a template.
    """
    try:
        raw = src.read_bytes()
        mode = _mode(src.stat())
    except OSError as e:
        raise GenerateError("reading", src, str(e)) from e

    try:
        text: str | None = raw.decode("utf-8")
    except UnicodeDecodeError:
        text = None

    if text is not None:
        name = template_name(src)
        try:
            executor.register(name, text)
        except ExecutorError as e:
            raise GenerateError("parsing", src, str(e)) from e
        try:
            raw = executor.render(name, data).encode("utf-8")
        except ExecutorError as e:
            raise GenerateError("rendering", src, str(e)) from e

    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        dst.write_bytes(raw)
        os.chmod(dst, mode)
    except OSError as e:
        raise GenerateError("writing", dst, str(e)) from e

    logger.debug("%s %s -> %s", "Rendered" if text is not None else "Copied", src, dst)
    return text is not None


def _walk(executor: Executor, src_dir: Path, dst_dir: Path, data: Mapping[str, Any], tally: _Tally) -> None:
    try:
        entries = sorted(os.scandir(src_dir), key=lambda e: e.name)
    except OSError as e:
        raise GenerateError("reading", src_dir, str(e)) from e

    for entry in entries:
        if entry.name in IGNORED_NAMES:
            continue
        src = Path(entry.path)
        rendered = _render_name(executor, entry.name, data, src)
        if is_skipped(rendered):
            logger.debug("Skipping %s (rendered name %r)", src, rendered)
            continue

        dst = dst_dir / rendered
        if entry.is_dir():
            try:
                mode = _mode(entry.stat())
                dst.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise GenerateError("writing", dst, str(e)) from e
            tally.directories += 1
            _walk(executor, src, dst, data, tally)
            # Set after the subtree is written; mkdir modes are masked by the umask.
            try:
                os.chmod(dst, mode)
            except OSError as e:
                raise GenerateError("writing", dst, str(e)) from e
            continue

        if render_file(executor, src, dst, data):
            tally.rendered_files += 1
        else:
            tally.copied_files += 1


def generate(
    executor: Executor,
    input_dir: str | Path,
    output_dir: str | Path,
    data: Mapping[str, Any] | None = None,
) -> GenerateResult:
    """
    Render the tree below input_dir into output_dir.

    - Creates output_dir (mode 0o755) if needed.
    - Existing output files are overwritten.
    """
    src_root = Path(input_dir)
    dst_root = Path(output_dir)
    data = data or {}

    if not src_root.is_dir():
        raise GenerateError("reading", src_root, "input directory not found")

    try:
        dst_root.mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as e:
        raise GenerateError("writing", dst_root, str(e)) from e

    tally = _Tally()
    _walk(executor, src_root, dst_root, data, tally)

    logger.info(
        "Generated %s from %s (%d rendered, %d copied, %d directories)",
        dst_root,
        src_root,
        tally.rendered_files,
        tally.copied_files,
        tally.directories,
    )
    return GenerateResult(
        rendered_files=tally.rendered_files,
        copied_files=tally.copied_files,
        directories=tally.directories,
    )
