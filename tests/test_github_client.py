from __future__ import annotations

import io
import shutil
import tarfile
from pathlib import Path

import pytest

from treeweave.git_client import CheckoutError, CloneError, GitError
from treeweave.github_client import GitHubArchiveClient, api_base_for

API = "https://api.github.com/repos/acme/tpl"


def make_tarball(files: dict[str, str], top: str = "acme-tpl-0123abc") -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        root = tarfile.TarInfo(top)
        root.type = tarfile.DIRTYPE
        root.mode = 0o755
        tar.addfile(root)
        for rel, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(f"{top}/{rel}")
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


class FakeResponse:
    def __init__(self, status_code: int, payload=None, body: bytes = b"") -> None:
        self.status_code = status_code
        self._payload = payload
        self.raw = io.BytesIO(body)
        self.text = "" if payload is None else str(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        return None


class FakeSession:
    def __init__(self, routes: dict[str, FakeResponse]) -> None:
        self.routes = routes
        self.requested: list[str] = []
        self.headers_seen: list[dict[str, str]] = []

    def _lookup(self, url: str, headers: dict[str, str]) -> FakeResponse:
        self.requested.append(url)
        self.headers_seen.append(headers)
        return self.routes.get(url, FakeResponse(404, {"message": "Not Found"}))

    def request(self, method, url, headers=None, timeout=None):
        return self._lookup(url, headers or {})

    def get(self, url, headers=None, timeout=None, stream=False):
        return self._lookup(url, headers or {})


@pytest.fixture
def session() -> FakeSession:
    return FakeSession(
        {
            f"{API}/tarball/trunk": FakeResponse(200, body=make_tarball({"greeting.txt": "trunk"})),
            f"{API}/git/ref/tags/v1": FakeResponse(200, {"object": {"type": "tag", "sha": "tagobj"}}),
            f"{API}/git/tags/tagobj": FakeResponse(200, {"object": {"type": "commit", "sha": "c0ffee"}}),
            f"{API}/tarball/c0ffee": FakeResponse(
                200, body=make_tarball({"greeting.txt": "v1", "sub/extra.txt": "x"})
            ),
        }
    )


def test_api_base_for() -> None:
    assert api_base_for("github.com") == "https://api.github.com"
    assert api_base_for("git.corp.example") == "https://git.corp.example/api/v3"


def test_clone_unpacks_configured_default_branch(session: FakeSession, tmp_path: Path) -> None:
    client = GitHubArchiveClient(token="tok", default_branch="trunk", session=session)
    client.clone("github.com", "acme", "tpl", tmp_path)

    assert (tmp_path / "greeting.txt").read_text(encoding="utf-8") == "trunk"
    assert not (tmp_path / "acme-tpl-0123abc").exists()
    assert session.headers_seen[0]["Authorization"] == "Bearer tok"


def test_checkout_tag_resolves_after_branch_miss(session: FakeSession, tmp_path: Path) -> None:
    client = GitHubArchiveClient(default_branch="trunk", session=session)
    client.clone("github.com", "acme", "tpl", tmp_path)
    client.checkout(tmp_path, "v1")

    assert (tmp_path / "greeting.txt").read_text(encoding="utf-8") == "v1"
    assert (tmp_path / "sub" / "extra.txt").exists()
    probes = [u for u in session.requested if "/git/ref/" in u]
    assert probes == [f"{API}/git/ref/heads/v1", f"{API}/git/ref/tags/v1"]


def test_checkout_unknown_revision(session: FakeSession, tmp_path: Path) -> None:
    client = GitHubArchiveClient(default_branch="trunk", session=session)
    client.clone("github.com", "acme", "tpl", tmp_path)
    with pytest.raises(CheckoutError):
        client.checkout(tmp_path, "nope")
    assert session.requested[-1] == f"{API}/commits/nope"
    # The tree is only replaced once a revision resolves.
    assert (tmp_path / "greeting.txt").read_text(encoding="utf-8") == "trunk"


def test_clone_missing_repository(tmp_path: Path) -> None:
    client = GitHubArchiveClient(session=FakeSession({}))
    with pytest.raises(CloneError, match="https://github.com/acme/missing.git"):
        client.clone("github.com", "acme", "missing", tmp_path)


def test_checkout_requires_prior_clone(tmp_path: Path) -> None:
    with pytest.raises(GitError, match="was not cloned"):
        GitHubArchiveClient(session=FakeSession({})).checkout(tmp_path, "main")


def test_default_revision() -> None:
    assert GitHubArchiveClient(session=FakeSession({})).default_revision() == "main"
    assert GitHubArchiveClient(default_branch="dev", session=FakeSession({})).default_revision() == "dev"


def test_clone_without_configured_default_downloads_main(tmp_path: Path) -> None:
    session = FakeSession({f"{API}/tarball/main": FakeResponse(200, body=make_tarball({"greeting.txt": "main"}))})
    GitHubArchiveClient(session=session).clone("github.com", "acme", "tpl", tmp_path)

    assert session.requested == [f"{API}/tarball/main"]
    assert (tmp_path / "greeting.txt").read_text(encoding="utf-8") == "main"


def test_clone_forgets_removed_directories(session: FakeSession, tmp_path: Path) -> None:
    client = GitHubArchiveClient(default_branch="trunk", session=session)
    first, second = tmp_path / "first", tmp_path / "second"
    client.clone("github.com", "acme", "tpl", first)
    shutil.rmtree(first)
    client.clone("github.com", "acme", "tpl", second)

    assert list(client._origins) == [second.resolve()]
    with pytest.raises(GitError, match="was not cloned"):
        client.checkout(first, "v1")


def test_clone_rejects_members_outside_destination(tmp_path: Path) -> None:
    body = make_tarball({"../escaped.txt": "x", "greeting.txt": "hi"})
    session = FakeSession({f"{API}/tarball/main": FakeResponse(200, body=body)})
    with pytest.raises(CloneError):
        GitHubArchiveClient(session=session).clone("github.com", "acme", "tpl", tmp_path / "dest")
    assert not (tmp_path / "escaped.txt").exists()
