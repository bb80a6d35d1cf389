"""Git remote URL parsing and normalization."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from rulem.errors import ValidationError
from rulem.utils import default_storage_dir


_SSH_URL = re.compile(r"^git@([^:]+):([^/]+)/(.+?)(?:\.git)?$")
_SSH_PREFIX = re.compile(r"^git@([^:]+):(.+)$")


@dataclass(frozen=True)
class GitUrlInfo:
    host: str
    owner: str
    repo: str

    @property
    def https_url(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.repo}.git"


def parse_git_url(url: str) -> GitUrlInfo:
    """Split an https or scp-style SSH remote into host, owner and repo."""
    text = url.strip()
    if not text:
        raise ValidationError("Git URL cannot be empty")

    match = _SSH_URL.match(text)
    if match:
        return GitUrlInfo(host=match.group(1), owner=match.group(2), repo=match.group(3))

    parsed = urlparse(text)
    if not parsed.netloc:
        raise ValidationError(f"Git URL is missing a host: {text}")

    parts = parsed.path.strip("/").split("/")
    if len(parts) < 2:
        raise ValidationError(f"Git URL path should contain owner/repo: {parsed.path}")
    owner = parts[0]
    repo = parts[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        raise ValidationError(f"Could not extract owner/repo from URL path: {parsed.path}")
    return GitUrlInfo(host=parsed.netloc, owner=owner, repo=repo)


def normalize_git_url(url: str) -> str:
    """Comparison key for remotes: ``host/owner/repo`` without scheme or ``.git``."""
    text = url.strip()
    if text.endswith(".git"):
        text = text[: -len(".git")]
    match = _SSH_PREFIX.match(text)
    if match:
        return f"{match.group(1)}/{match.group(2)}"
    for scheme in ("https://", "http://"):
        if text.startswith(scheme):
            return text[len(scheme) :]
    return text


def derive_clone_path(url: str, storage_root: Optional[str] = None) -> str:
    info = parse_git_url(url)
    return os.path.join(storage_root or default_storage_dir(), info.repo)
