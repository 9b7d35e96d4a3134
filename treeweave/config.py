"""
config.py

Responsibility: resolve run settings from CLI flags and the environment.

Precedence: explicit flag, then environment variable, then built-in default.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Mapping

from treeweave.git_client import DEFAULT_REVISION, GitClient, SubprocessGitClient
from treeweave.github_client import GitHubArchiveClient

TOKEN_ENV_VARS = ("TREEWEAVE_GIT_TOKEN", "GIT_TOKEN")
BRANCH_ENV_VAR = "TREEWEAVE_BRANCH"
BACKENDS = ("git", "github")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    token: str = ""
    branch: str = DEFAULT_REVISION
    remote: str = ""
    backend: str = "git"
    verbose: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace, environ: Mapping[str, str]) -> Settings:
        token = args.git_token or next((environ[k] for k in TOKEN_ENV_VARS if environ.get(k)), "")
        branch = args.branch or environ.get(BRANCH_ENV_VAR) or DEFAULT_REVISION
        backend = args.backend or "git"
        if backend not in BACKENDS:
            raise ConfigError(f"Unknown backend {backend!r} (expected one of: {', '.join(BACKENDS)})")
        return cls(
            token=token,
            branch=branch,
            remote=args.remote or "",
            backend=backend,
            verbose=bool(args.verbose),
        )

    def build_client(self) -> GitClient:
        if self.backend == "github":
            return GitHubArchiveClient(token=self.token, default_branch=self.branch)
        return SubprocessGitClient(default_branch=self.branch, token=self.token)
