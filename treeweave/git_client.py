"""
git_client.py

Responsibility: the source-control capability used to materialize remote
repositories, and the revision fallback shared by every backend.

A revision string is ambiguous, so checkout probes it as a branch, then a tag,
then a commit hash, and accepts the first that succeeds.

`SubprocessGitClient` is the default backend and the only place that invokes
the `git` executable.
"""

from __future__ import annotations

import base64
import logging
import os
import subprocess
from pathlib import Path
from typing import Callable, Protocol, Sequence

logger = logging.getLogger(__name__)

DEFAULT_REVISION = "main"


class GitError(RuntimeError):
    pass


class CloneError(GitError):
    def __init__(self, url: str, detail: str) -> None:
        super().__init__(f"failed to clone repo {url}: {detail}")
        self.url = url


class CheckoutError(GitError):
    def __init__(self, revision: str, detail: str = "") -> None:
        msg = f"failed to checkout revision {revision!r} as branch, tag or commit"
        super().__init__(f"{msg}: {detail}" if detail else msg)
        self.revision = revision


class GitClient(Protocol):
    def clone(self, host: str, owner: str, repo: str, dest: str | Path) -> None: ...

    def checkout(self, dest: str | Path, revision: str) -> None: ...

    def default_revision(self) -> str: ...


Attempt = tuple[str, Callable[[], None]]


def checkout_revision(revision: str, attempts: Sequence[Attempt]) -> str | None:
    """
    Run `attempts` in order until one succeeds and return its kind.

    Each attempt signals failure by raising GitError. An empty revision is a
    no-op and returns None.
    """
    if not revision:
        return None

    last_error: GitError | None = None
    for kind, attempt in attempts:
        try:
            attempt()
        except GitError as e:
            logger.debug("Revision %s is not a %s: %s", revision, kind, e)
            last_error = e
            continue
        logger.info("Checked out %s %s", kind, revision)
        return kind

    raise CheckoutError(revision) from last_error


class SubprocessGitClient:
    def __init__(self, default_branch: str = "", token: str = "") -> None:
        self._default_branch = default_branch.strip() or DEFAULT_REVISION
        self._token = token

    def default_revision(self) -> str:
        return self._default_branch

    def _env(self) -> dict[str, str]:
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        if self._token:
            # Passed as config through the environment so the token stays out of argv.
            # Appended after any GIT_CONFIG_* entries the caller already set.
            basic = base64.b64encode(f"x-access-token:{self._token}".encode()).decode()
            index = int(env.get("GIT_CONFIG_COUNT") or 0)
            env["GIT_CONFIG_COUNT"] = str(index + 1)
            env[f"GIT_CONFIG_KEY_{index}"] = "http.extraHeader"
            env[f"GIT_CONFIG_VALUE_{index}"] = f"Authorization: Basic {basic}"
        return env

    def _git(self, args: list[str], *, cwd: str | Path | None = None) -> str:
        """
        Run a git command, raising GitError on failure.
        """
        cmd = ["git", *args]
        try:
            proc = subprocess.run(
                cmd,
                cwd=None if cwd is None else str(cwd),
                env=self._env(),
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found on PATH") from e
        except subprocess.CalledProcessError as e:
            raise GitError(f"Command failed: {' '.join(cmd)}\n\n{e.stdout}") from e
        return proc.stdout

    def clone(self, host: str, owner: str, repo: str, dest: str | Path) -> None:
        url = f"https://{host}/{owner}/{repo}.git"
        branch = self.default_revision()
        logger.info("Cloning %s at %s", url, branch)
        try:
            self._git(["clone", "--quiet", "--branch", branch, "--", url, str(dest)])
        except GitError as e:
            raise CloneError(url, str(e)) from e

    def checkout(self, dest: str | Path, revision: str) -> None:
        checkout_revision(
            revision,
            [
                ("branch", lambda: self._git(["checkout", "--quiet", "-B", revision, f"refs/remotes/origin/{revision}"], cwd=dest)),
                ("tag", lambda: self._git(["checkout", "--quiet", "--detach", f"refs/tags/{revision}"], cwd=dest)),
                ("commit", lambda: self._git(["checkout", "--quiet", "--detach", f"{revision}^{{commit}}"], cwd=dest)),
            ],
        )
