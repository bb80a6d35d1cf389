"""Turn configured repository entries into prepared, scannable directories."""

from __future__ import annotations

import dataclasses
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence, Union

from rulem.errors import CanceledError, RulemError
from rulem.log import Logger, get_logger
from rulem.repository.git import GitSource
from rulem.repository.local import LocalSource
from rulem.repository.models import (
    PreparationResult,
    PreparedRepository,
    RepositoryEntry,
    RepositoryFailure,
    SyncResult,
    SyncStatus,
)
from rulem.repository.urls import derive_clone_path
from rulem.repository.validation import validate_all_repositories
from rulem.tasks import CancelToken, check_cancelled

DEFAULT_MAX_WORKERS = 4

Source = Union[LocalSource, GitSource]


def source_for(
    entry: RepositoryEntry,
    logger: Optional[Logger] = None,
    cancel_token: Optional[CancelToken] = None,
) -> Source:
    if entry.is_local:
        return LocalSource(entry.path, logger=logger)
    return _git_source(entry, logger, cancel_token)


def _git_source(
    entry: RepositoryEntry,
    logger: Optional[Logger],
    cancel_token: Optional[CancelToken],
) -> GitSource:
    url = entry.url or ""
    path = entry.path or derive_clone_path(url)
    return GitSource(
        url,
        path,
        branch=entry.branch,
        credential_ref=entry.credential_ref,
        logger=logger,
        cancel_token=cancel_token,
    )


def prepare_repository(
    entry: RepositoryEntry,
    logger: Optional[Logger] = None,
    cancel_token: Optional[CancelToken] = None,
) -> PreparedRepository:
    log = logger or get_logger(__name__)
    check_cancelled(cancel_token, "repository preparation")
    log.info(
        "Preparing repository",
        repository_id=entry.id,
        repository_name=entry.name,
        repository_type=entry.type.value,
    )
    local_path, sync = source_for(entry, log, cancel_token).prepare()
    log.info(
        "Repository prepared",
        repository_id=entry.id,
        local_path=local_path,
        status=sync.status.value,
    )
    return PreparedRepository(entry=entry, local_path=local_path, sync=sync)


def prepare_all_repositories(
    entries: Sequence[RepositoryEntry],
    max_workers: int = DEFAULT_MAX_WORKERS,
    logger: Optional[Logger] = None,
    cancel_token: Optional[CancelToken] = None,
) -> PreparationResult:
    """Validate every entry, then prepare them in parallel.

    Each repository owns a disjoint directory tree so the work is spread over
    a thread pool. Results keep the configured order. A repository that fails
    is reported in ``failures`` and does not stop the others.
    """
    log = logger or get_logger(__name__)
    log.info("Starting multi-repository preparation", repository_count=len(entries))
    validate_all_repositories(entries)

    result = PreparationResult()
    if not entries:
        return result

    workers = max(1, min(max_workers, len(entries)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(prepare_repository, entry, log, cancel_token) for entry in entries
        ]
        for entry, future in zip(entries, futures):
            try:
                result.prepared.append(future.result())
            except CanceledError:
                for pending in futures:
                    pending.cancel()
                raise
            except RulemError as exc:
                log.error(
                    "Repository preparation failed",
                    repository_id=entry.id,
                    repository_name=entry.name,
                    error=exc.user_message(),
                )
                result.failures.append(
                    RepositoryFailure(entry.id, entry.name, exc.user_message())
                )

    log.info(
        "Multi-repository preparation completed",
        total_repositories=len(entries),
        prepared_successfully=len(result.prepared),
    )
    return result


def sync_repository(
    prepared: PreparedRepository,
    logger: Optional[Logger] = None,
    cancel_token: Optional[CancelToken] = None,
) -> PreparedRepository:
    if prepared.entry.is_local:
        return dataclasses.replace(prepared, sync=SyncResult(SyncStatus.OK, "Local repository"))
    source = _git_source(prepared.entry, logger, cancel_token)
    return dataclasses.replace(prepared, sync=source.sync(prepared.local_path))


def sync_all_repositories(
    prepared: Sequence[PreparedRepository],
    logger: Optional[Logger] = None,
    cancel_token: Optional[CancelToken] = None,
) -> list[PreparedRepository]:
    log = logger or get_logger(__name__)
    log.info("Starting multi-repository sync", repository_count=len(prepared))
    refreshed = []
    for repository in prepared:
        check_cancelled(cancel_token, "repository sync")
        updated = sync_repository(repository, log, cancel_token)
        log.info(
            "Repository sync completed",
            repository_id=updated.id,
            status=updated.status.value,
            message=updated.sync.message,
        )
        refreshed.append(updated)
    return refreshed
