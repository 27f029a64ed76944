"""Turn configured source strings into a validated work list."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable
from urllib.parse import urlsplit, urlunsplit

from ..config import SourceKind

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_SLASHES_RE = re.compile(r"/{2,}")


@dataclass(frozen=True, slots=True)
class RuleSource:
    """A single list to ingest."""

    kind: SourceKind
    location: str

    @property
    def is_remote(self) -> bool:
        return self.kind is SourceKind.REMOTE


def normalize_url(raw: str) -> str:
    """Canonical form of a remote list URL (scheme defaults to http)."""

    text = raw.strip().replace("\\", "/")
    if not _SCHEME_RE.match(text):
        text = "http://" + text.lstrip("/")
    parts = urlsplit(text)
    netloc = parts.netloc
    if "@" in netloc:
        userinfo, _, host = netloc.rpartition("@")
        netloc = f"{userinfo}@{host.lower()}"
    else:
        netloc = netloc.lower()
    path = _SLASHES_RE.sub("/", parts.path)
    return urlunsplit((parts.scheme.lower(), netloc, path, parts.query, parts.fragment))


def normalize_local_path(raw: str, base_dir: Path) -> str:
    """Absolute, separator-normalized path for a local list."""

    text = raw.strip().replace("\\", "/")
    path = Path(text).expanduser()
    if not path.is_absolute():
        path = Path(base_dir) / path
    return os.path.normpath(path)


class RuleSourceResolver:
    """Resolve remote URLs and local paths; blank entries are dropped."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)

    def resolve(self, remote: Iterable[str], local: Iterable[str]) -> list[RuleSource]:
        sources = [
            RuleSource(SourceKind.REMOTE, normalize_url(entry))
            for entry in remote
            if entry and entry.strip()
        ]
        sources.extend(
            RuleSource(SourceKind.LOCAL, normalize_local_path(entry, self.base_dir))
            for entry in local
            if entry and entry.strip()
        )
        return sources


__all__ = ["RuleSource", "RuleSourceResolver", "normalize_local_path", "normalize_url"]
