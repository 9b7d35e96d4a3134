from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from treeweave.git_client import CheckoutError, CloneError


class FakeGitClient:
    """
    Clones from `<root>/<host>/<owner>/<repo>/<revision>/` instead of the network.

    The `main` directory is the default branch; any other directory is a
    revision that `checkout` can switch to.
    """

    def __init__(self, root: Path, default_branch: str = "main") -> None:
        self.root = root
        self.default_branch = default_branch
        self.clones: list[Path] = []
        self.checkouts: list[str] = []
        self._origins: dict[Path, Path] = {}

    def default_revision(self) -> str:
        return self.default_branch

    def clone(self, host: str, owner: str, repo: str, dest) -> None:
        src = self.root / host / owner / repo
        if not (src / self.default_branch).is_dir():
            raise CloneError(f"https://{host}/{owner}/{repo}.git", "repository not found")
        shutil.copytree(src / self.default_branch, dest, dirs_exist_ok=True)
        self.clones.append(Path(dest))
        self._origins[Path(dest)] = src

    def checkout(self, dest, revision: str) -> None:
        self.checkouts.append(revision)
        src = self._origins[Path(dest)] / revision
        if not src.is_dir():
            raise CheckoutError(revision)
        for child in Path(dest).iterdir():
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()
        shutil.copytree(src, dest, dirs_exist_ok=True)


def write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


def read_tree(root: Path) -> dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


BASIC_TEMPLATE = {
    "{{ Name }}.txt": "Hello, {{ Name }}!\n",
    "README.md": "# {{ Title }}\n\n{{ Description }}\n",
    "-secret.txt": "never rendered {{ Missing }}",
    "-drafts/notes.txt": "draft",
    "{{ Name | lower }}/detail.txt": "{{ Detail }}\n",
    "docs/{{ Name | snake_case }}_guide.md": "Guide for {{ Name }}\n",
}

BASIC_DATA = {
    "Name": "John",
    "Title": "Project",
    "Description": "This is a test project.",
    "Detail": "more info here.",
}


@pytest.fixture
def basic_template(tmp_path: Path) -> Path:
    return write_tree(tmp_path / "templates" / "basic_test", BASIC_TEMPLATE)


@pytest.fixture
def repos(tmp_path: Path) -> Path:
    """
    One remote repository, `example.com/acme/templates`, with a default branch
    and a `v2` revision.
    """
    root = tmp_path / "repos"
    repo = root / "example.com" / "acme" / "templates"
    write_tree(
        repo / "main",
        {
            "greeting.txt": "Hello, {{ Name }}!\n",
            "-block.txt": "{% block example_block %}{{ Greeting }}, this is an example block.{% endblock %}",
            "project/{{ Name }}.txt": "Hello, {{ Name }}!\n",
            "project/README.md": "# {{ Title }}\n",
            "project/-skip/ignored.txt": "ignored",
            ".git/HEAD": "ref: refs/heads/main\n",
        },
    )
    write_tree(repo / "v2", {"greeting.txt": "Hi there, {{ Name }}.\n"})
    return root


@pytest.fixture
def git_client(repos: Path) -> FakeGitClient:
    return FakeGitClient(repos)
