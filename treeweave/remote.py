"""
remote.py

Responsibility: materialize remote templates into the current render, either
inline (`embed`) or onto disk below the output root (`import`).

Template usage:
    {{ embed("github.com/owner/repo/path/file.txt@v1.2.0") }}
    {{ embed("github.com/owner/repo/path/file.txt#block_name@main", data) }}
    {{ import("github.com/owner/repo/some/dir@v1.2.0", "dest/subdir") }}

The data argument is optional and defaults to the calling template's variables.

Every operation clones into a fresh temporary directory that is removed on
exit, success or failure. Both functions fail closed without a token.
"""

from __future__ import annotations

import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping

from jinja2 import pass_context
from jinja2.runtime import Context

from treeweave.executor import Executor, ExecutorError, template_name
from treeweave.git_client import GitClient, GitError
from treeweave.reference import RemoteReference, parse_reference
from treeweave.walker import GenerateError, generate, render_file

logger = logging.getLogger(__name__)

CLONE_DIR_PREFIX = "treeweave_clone_"
MISSING_CREDENTIAL_MESSAGE = "embed and import functions require a git token"


class RemoteError(RuntimeError):
    def __init__(self, reference: str, detail: str) -> None:
        super().__init__(f"{reference}: {detail}")
        self.reference = reference


class MissingCredentialError(RuntimeError):
    def __init__(self) -> None:
        super().__init__(MISSING_CREDENTIAL_MESSAGE)


class RemoteResolver:
    def __init__(self, executor: Executor, client: GitClient, output_root: str | Path) -> None:
        self.executor = executor
        self.client = client
        self.output_root = Path(output_root)

    @contextmanager
    def _materialize(self, ref: RemoteReference) -> Iterator[Path]:
        default = self.client.default_revision()
        revision = ref.revision or default
        with tempfile.TemporaryDirectory(prefix=CLONE_DIR_PREFIX) as tmp:
            root = Path(tmp)
            self.client.clone(ref.host, ref.owner, ref.repo, root)
            if revision != default:
                self.client.checkout(root, revision)
            yield root

    def embed(self, reference: str, data: Mapping[str, Any] | None = None) -> str:
        """
        Render the referenced file (or named fragment) and return the text.
        """
        ref = parse_reference(reference)
        try:
            with self._materialize(ref) as root:
                target = root / ref.path if ref.path else root
                names = self.executor.register_path(target.parent if ref.path else root)
                if ref.fragment:
                    within = [template_name(target)] if ref.path else names
                    return self.executor.render_fragment(ref.fragment, data, within=within)
                if not target.is_file():
                    raise RemoteError(reference, f"{ref.path or '/'} is not a file in {ref.owner}/{ref.repo}")
                return self.executor.render(template_name(target), data)
        except (GitError, ExecutorError) as e:
            raise RemoteError(reference, str(e)) from e

    def import_(self, reference: str, dest_subpath: str = "", data: Mapping[str, Any] | None = None) -> str:
        """
        Render the referenced file or directory below `output_root/dest_subpath`.

        Returns an empty string so the call leaves no trace in the calling template.
        """
        ref = parse_reference(reference)
        dest = self.output_root / dest_subpath
        try:
            with self._materialize(ref) as root:
                source = root / ref.path if ref.path else root
                if source.is_dir():
                    generate(self.executor, source, dest, data)
                elif source.is_file():
                    render_file(self.executor, source, dest / source.name, data or {})
                else:
                    raise RemoteError(reference, f"{ref.path} not found in {ref.owner}/{ref.repo}")
        except (GitError, GenerateError) as e:
            raise RemoteError(reference, str(e)) from e
        logger.info("Imported %s into %s", reference, dest)
        return ""

    def funcs(self) -> dict[str, Callable[..., Any]]:
        @pass_context
        def embed(context: Context, reference: str, data: Mapping[str, Any] | None = None) -> str:
            return self.embed(reference, context.get_all() if data is None else data)

        @pass_context
        def import_(context: Context, reference: str, dest_subpath: str = "", data: Mapping[str, Any] | None = None) -> str:
            return self.import_(reference, dest_subpath, context.get_all() if data is None else data)

        return {"embed": embed, "import": import_}


def missing_credential_funcs() -> dict[str, Callable[..., Any]]:
    def embed(*_args: Any, **_kwargs: Any) -> str:
        raise MissingCredentialError()

    def import_(*_args: Any, **_kwargs: Any) -> str:
        raise MissingCredentialError()

    return {"embed": embed, "import": import_}


def install_remote_funcs(executor: Executor, client: GitClient, output_root: str | Path, token: str) -> None:
    """
    Register `embed`/`import` on `executor`: the working pair when a token is
    present, otherwise stand-ins that raise MissingCredentialError.
    """
    if token:
        executor.add_funcs(RemoteResolver(executor, client, output_root).funcs())
    else:
        executor.add_funcs(missing_credential_funcs())
