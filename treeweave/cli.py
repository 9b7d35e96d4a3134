"""
cli.py

Responsibility: CLI entrypoint for treeweave.

High-level flow (single command `render`):
1) Resolve settings (flags + environment) and load the data mapping
2) Build an executor; wire `embed`/`import` when a token is available
3) Either generate the local input tree, or (with --remote) import the input
   path from the remote repository into the output directory

This module should orchestrate behavior but keep concerns isolated:
- Settings: `config.py`
- Data loading: `data.py`
- Rendering: `executor.py` / `walker.py`
- Remote access: `remote.py`
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from treeweave.config import BACKENDS, ConfigError, Settings
from treeweave.data import DataError, load_data
from treeweave.executor import Executor
from treeweave.reference import ReferenceParseError, parse_reference
from treeweave.remote import MissingCredentialError, RemoteError, RemoteResolver, install_remote_funcs
from treeweave.walker import GenerateError, generate

logger = logging.getLogger(__name__)

_KNOWN_ERRORS = (ConfigError, DataError, ReferenceParseError, MissingCredentialError, RemoteError, GenerateError)


def render_cmd(args: argparse.Namespace) -> int:
    settings = Settings.from_args(args, os.environ)
    data = load_data(args.data)

    client = settings.build_client()
    executor = Executor()
    install_remote_funcs(executor, client, args.output_path, settings.token)

    if settings.remote:
        if not settings.token:
            raise MissingCredentialError()
        ref = parse_reference(settings.remote).with_path(args.input_path)
        RemoteResolver(executor, client, args.output_path).import_(str(ref), "", data)
        return 0

    generate(executor, args.input_path, args.output_path, data)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="treeweave", description="Render file trees from local or remote templates")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    r = sub.add_parser("render", help="Render an input tree into an output directory")
    r.add_argument("input_path", help="Template directory (a path inside the repo with --remote)")
    r.add_argument("output_path", help="Directory to write the rendered tree into")
    r.add_argument("data", help="JSON/YAML data, or @file to read it from a file")
    r.add_argument("-t", "--git-token", default=None, help="Git token (or set TREEWEAVE_GIT_TOKEN / GIT_TOKEN)")
    r.add_argument("-b", "--branch", default=None, help="Default branch (or set TREEWEAVE_BRANCH; default: main)")
    r.add_argument("-r", "--remote", default=None, help="Remote repository to render from (example: github.com/owner/repo@ref)")
    r.add_argument("--backend", choices=BACKENDS, default=None, help="Source-control backend (default: git)")

    r.set_defaults(func=render_cmd)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return int(args.func(args))
    except _KNOWN_ERRORS as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
