from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from rulem.constants import MARKDOWN_EXTENSIONS
from rulem.repository.models import RepositoryFailure, RepositoryType


@dataclass(frozen=True)
class FileItem:
    name: str
    path: str
    repository_id: Optional[str] = None
    repository_name: Optional[str] = None
    repository_type: Optional[RepositoryType] = None


@dataclass
class MultiRepositoryScan:
    files: list[FileItem] = field(default_factory=list)
    failures: list[RepositoryFailure] = field(default_factory=list)


def is_markdown_file(file_name: str) -> bool:
    return os.path.splitext(file_name)[1].lower() in MARKDOWN_EXTENSIONS
