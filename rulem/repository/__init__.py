from rulem.repository.git import DirectoryStatus, GitSource
from rulem.repository.local import LocalSource
from rulem.repository.models import (
    PreparationResult,
    PreparedRepository,
    RepositoryEntry,
    RepositoryFailure,
    RepositoryType,
    SyncResult,
    SyncStatus,
    generate_repository_id,
)
from rulem.repository.preparation import (
    prepare_all_repositories,
    prepare_repository,
    sync_all_repositories,
)
from rulem.repository.urls import GitUrlInfo, derive_clone_path, normalize_git_url, parse_git_url
from rulem.repository.validation import validate_all_repositories, validate_repository_entry

__all__ = [
    "DirectoryStatus",
    "GitSource",
    "GitUrlInfo",
    "LocalSource",
    "PreparationResult",
    "PreparedRepository",
    "RepositoryEntry",
    "RepositoryFailure",
    "RepositoryType",
    "SyncResult",
    "SyncStatus",
    "derive_clone_path",
    "generate_repository_id",
    "normalize_git_url",
    "parse_git_url",
    "prepare_all_repositories",
    "prepare_repository",
    "sync_all_repositories",
    "validate_all_repositories",
    "validate_repository_entry",
]
