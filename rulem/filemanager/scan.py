"""Scan every prepared repository and tag files with where they came from."""

from __future__ import annotations

import dataclasses
from typing import Optional, Sequence

from rulem.errors import CanceledError, RulemError
from rulem.filemanager.manager import FileManager
from rulem.filemanager.models import FileItem, MultiRepositoryScan
from rulem.log import Logger, get_logger
from rulem.repository.models import PreparedRepository, RepositoryFailure
from rulem.tasks import CancelToken, check_cancelled


def scan_repository(
    prepared: PreparedRepository,
    logger: Optional[Logger] = None,
    cancel_token: Optional[CancelToken] = None,
) -> tuple[str, list[FileItem]]:
    """Return the scanned storage root and its tagged Markdown files."""
    with FileManager(prepared.local_path, logger=logger, cancel_token=cancel_token) as manager:
        items = manager.scan_storage()
        storage_dir = manager.storage_dir
    tagged = [
        dataclasses.replace(
            item,
            repository_id=prepared.id,
            repository_name=prepared.name,
            repository_type=prepared.type,
        )
        for item in items
    ]
    return storage_dir, tagged


def scan_all_repositories(
    prepared: Sequence[PreparedRepository],
    logger: Optional[Logger] = None,
    cancel_token: Optional[CancelToken] = None,
) -> MultiRepositoryScan:
    log = logger or get_logger(__name__)
    log.info("Starting multi-repository scan", repository_count=len(prepared))

    result = MultiRepositoryScan()
    for repository in prepared:
        check_cancelled(cancel_token, "repository scan")
        log.info(
            "Scanning repository",
            repository_id=repository.id,
            repository_name=repository.name,
            repository_type=repository.type.value,
            path=repository.local_path,
        )
        try:
            _, items = scan_repository(repository, log, cancel_token)
        except CanceledError:
            raise
        except RulemError as exc:
            log.error("Repository scan failed", repository_id=repository.id, error=exc.message)
            result.failures.append(
                RepositoryFailure(repository.id, repository.name, exc.user_message())
            )
            continue
        result.files.extend(items)

    log.info(
        "Multi-repository scan completed",
        file_count=len(result.files),
        failed=len(result.failures),
    )
    return result
