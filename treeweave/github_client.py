"""
github_client.py

Responsibility: a `GitClient` backend that needs no local git, built on the
GitHub REST API.

This module must be the only place that:
- Constructs GitHub REST endpoints
- Sends HTTP requests to the GitHub API
- Interprets GitHub API responses / error payloads

A "clone" is the configured default branch's tarball unpacked into the
destination; a "checkout" resolves the revision to a commit and swaps the tree for that
commit's tarball.
"""

from __future__ import annotations

import logging
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote

import requests

from treeweave.git_client import DEFAULT_REVISION, CloneError, GitError, checkout_revision

logger = logging.getLogger(__name__)


class GitHubError(GitError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class RepoInfo:
    api_base: str
    owner: str
    name: str


def api_base_for(host: str) -> str:
    """
    Return the REST endpoint root for `host`; other hosts are treated as
    GitHub Enterprise servers.
    """
    if host in ("github.com", "www.github.com"):
        return "https://api.github.com"
    return f"https://{host}/api/v3"


class GitHubArchiveClient:
    def __init__(
        self,
        token: str = "",
        default_branch: str = "",
        api_base: str | None = None,
        session: requests.Session | None = None,
        timeout: float = 30,
    ) -> None:
        self._token = token
        self._default_branch = default_branch.strip() or DEFAULT_REVISION
        self._api_base = api_base.rstrip("/") if api_base else None
        self._session = session or requests.Session()
        self._timeout = timeout
        # Checkout only receives the destination, so remember where each one came from.
        self._origins: dict[Path, RepoInfo] = {}

    def default_revision(self) -> str:
        return self._default_branch

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "treeweave",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _request(self, method: str, url: str) -> Any:
        r = self._session.request(method, url, headers=self._headers(), timeout=self._timeout)
        if r.status_code >= 400:
            try:
                payload = r.json()
            except ValueError:
                payload = {"message": r.text}
            raise GitHubError(
                f"GitHub API error {r.status_code} {method} {url}: {payload.get('message', payload)}",
                status_code=r.status_code,
            )
        return r.json()

    def _repo_url(self, info: RepoInfo, path: str = "") -> str:
        return f"{info.api_base}/repos/{info.owner}/{info.name}{path}"


    def _download(self, info: RepoInfo, ref: str, dest: Path) -> None:
        url = self._repo_url(info, f"/tarball/{quote(ref, safe='')}")
        with self._session.get(url, headers=self._headers(), timeout=self._timeout, stream=True) as r:
            if r.status_code >= 400:
                raise GitHubError(f"GitHub API error {r.status_code} GET {url}", status_code=r.status_code)
            _extract_stripped(r.raw, dest)

    def clone(self, host: str, owner: str, repo: str, dest: str | Path) -> None:
        dest_path = Path(dest)
        info = RepoInfo(api_base=self._api_base or api_base_for(host), owner=owner, name=repo)
        branch = self.default_revision()
        try:
            logger.info("Downloading %s/%s@%s", owner, repo, branch)
            self._download(info, branch, dest_path)
        except (GitError, requests.RequestException, tarfile.TarError) as e:
            raise CloneError(f"https://{host}/{owner}/{repo}.git", str(e)) from e
        # Forget clones whose directories have since been removed.
        self._origins = {path: origin for path, origin in self._origins.items() if path.is_dir()}
        self._origins[dest_path.resolve()] = info

    def _resolve_ref(self, info: RepoInfo, kind: str, revision: str) -> str:
        data = self._request("GET", self._repo_url(info, f"/git/ref/{kind}/{quote(revision)}"))
        obj = data["object"]
        if obj.get("type") == "tag":
            # Annotated tag: follow the tag object to its commit.
            obj = self._request("GET", self._repo_url(info, f"/git/tags/{obj['sha']}"))["object"]
        return obj["sha"]

    def _resolve_commit(self, info: RepoInfo, revision: str) -> str:
        return self._request("GET", self._repo_url(info, f"/commits/{quote(revision, safe='')}"))["sha"]

    def checkout(self, dest: str | Path, revision: str) -> None:
        dest_path = Path(dest)
        info = self._origins.get(dest_path.resolve())
        if info is None:
            raise GitError(f"{dest_path} was not cloned by this client")

        def attempt(resolve):
            def run() -> None:
                try:
                    sha = resolve()
                    _clear_dir(dest_path)
                    self._download(info, sha, dest_path)
                except requests.RequestException as e:
                    raise GitHubError(str(e)) from e

            return run

        checkout_revision(
            revision,
            [
                ("branch", attempt(lambda: self._resolve_ref(info, "heads", revision))),
                ("tag", attempt(lambda: self._resolve_ref(info, "tags", revision))),
                ("commit", attempt(lambda: self._resolve_commit(info, revision))),
            ],
        )


def _clear_dir(path: Path) -> None:
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def _extract_stripped(fileobj: Any, dest: Path) -> None:
    """
    Extract a GitHub tarball, dropping its single `<owner>-<repo>-<sha>/` top directory.
    """
    dest.mkdir(parents=True, exist_ok=True)
    with tarfile.open(fileobj=fileobj, mode="r|gz") as tar:
        for member in tar:
            _top, _sep, rest = member.name.partition("/")
            if not rest:
                continue
            member.name = rest
            if member.islnk():
                member.linkname = member.linkname.partition("/")[2]
            tar.extract(member, dest, filter="data")
