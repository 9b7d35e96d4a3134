"""
treeweave package

Render file trees from templates, pulling files, directories or named blocks
from remote git repositories into the output.

Key responsibilities are split across modules:
- `reference.py`: parse `host/owner/repo/path#fragment@revision` references
- `git_client.py` / `github_client.py`: source-control backends (clone + checkout)
- `executor.py`: the shared namespace of named Jinja2 templates
- `walker.py`: deterministic rendering of an input tree into an output directory
- `remote.py`: the `embed` / `import` template functions
- `cli.py`: CLI entrypoint and orchestration
"""

from __future__ import annotations

from treeweave.executor import Executor
from treeweave.reference import RemoteReference, parse_reference
from treeweave.remote import RemoteResolver, install_remote_funcs
from treeweave.walker import generate

__all__ = [
    "Executor",
    "RemoteReference",
    "RemoteResolver",
    "__version__",
    "generate",
    "install_remote_funcs",
    "parse_reference",
]

__version__ = "0.1.0"
