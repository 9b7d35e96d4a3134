"""
reference.py

Responsibility: Parse the compact remote reference notation into a typed value.

Notation:
    [scheme://]host/owner/repo[/path][#fragment][@revision]

- A missing scheme defaults to `https://`.
- A revision may be suffixed onto the repo or the path with `@`.
- A revision carried in the fragment (`#block@v2`) wins over one in the path.

This module intentionally does NOT know about git, cloning, or templates.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from urllib.parse import urlsplit

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


class ReferenceParseError(ValueError):
    pass


@dataclass(frozen=True)
class RemoteReference:
    """A repository, an optional path inside it, a fragment and a revision."""

    host: str
    owner: str
    repo: str
    path: str = ""
    fragment: str = ""
    revision: str = ""

    def __str__(self) -> str:
        out = "/".join(part for part in (self.host, self.owner, self.repo, self.path) if part)
        if self.fragment:
            out += f"#{self.fragment}"
        if self.revision:
            out += f"@{self.revision}"
        return out

    @property
    def clone_url(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.repo}.git"

    def with_path(self, path: str) -> RemoteReference:
        return replace(self, path=path.strip("/"))

    def with_revision(self, revision: str) -> RemoteReference:
        return replace(self, revision=revision)


def _split_revision(value: str) -> tuple[str, str]:
    head, sep, tail = value.partition("@")
    return head, tail if sep else ""


def parse_reference(raw: str) -> RemoteReference:
    """
    Parse `raw` into a `RemoteReference`.

    Raises ReferenceParseError when the path does not carry at least `owner/repo`.
    """
    text = raw.strip()
    if not _SCHEME_RE.match(text):
        text = "https://" + text

    try:
        parts = urlsplit(text)
    except ValueError as e:
        raise ReferenceParseError(f"invalid reference {raw!r}: {e}") from e

    # The first `@` anywhere in the path marks the start of the revision.
    path, path_revision = _split_revision(parts.path.strip("/"))
    fragment, fragment_revision = _split_revision(parts.fragment)

    segments = [s for s in path.strip("/").split("/") if s]
    if len(segments) < 2:
        raise ReferenceParseError("invalid path format in reference")

    return RemoteReference(
        host=parts.netloc,
        owner=segments[0],
        repo=segments[1],
        path="/".join(segments[2:]),
        fragment=fragment,
        revision=fragment_revision or path_revision,
    )
