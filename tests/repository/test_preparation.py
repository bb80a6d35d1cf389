from pathlib import Path

import pytest

from rulem.errors import CanceledError, ValidationError
from rulem.repository.models import RepositoryEntry, RepositoryType, SyncStatus
from rulem.repository.preparation import (
    prepare_all_repositories,
    prepare_repository,
    sync_all_repositories,
)
from rulem.tasks import CancelToken


def _local(name: str, path: Path, created_at: int = 1) -> RepositoryEntry:
    return RepositoryEntry(
        id=f"{name.lower()}-{created_at}",
        name=name,
        type=RepositoryType.LOCAL,
        created_at=created_at,
        path=str(path),
    )


def test_prepare_local_repository_creates_directory(home: Path) -> None:
    entry = _local("Local", home / "rules")
    prepared = prepare_repository(entry)

    assert prepared.local_path == str(home / "rules")
    assert prepared.status == SyncStatus.OK
    assert (home / "rules").is_dir()


def test_prepare_local_repository_expands_home(home: Path) -> None:
    entry = _local("Local", Path("~/rules"))
    assert prepare_repository(entry).local_path == str(home / "rules")


def test_prepare_all_keeps_configured_order(home: Path) -> None:
    entries = [_local(f"Repo{index}", home / f"r{index}", index + 1) for index in range(6)]
    result = prepare_all_repositories(entries, max_workers=3)

    assert result.ok
    assert [item.id for item in result.prepared] == [entry.id for entry in entries]


def test_failed_repository_does_not_stop_others(home: Path) -> None:
    (home / "file").write_text("not a directory", encoding="utf-8")
    entries = [
        _local("Good", home / "good", 1),
        _local("Bad", home / "file", 2),
        _local("Reserved", Path("/etc/rulem"), 3),
    ]
    result = prepare_all_repositories(entries)

    assert [item.name for item in result.prepared] == ["Good"]
    assert [failure.repository_name for failure in result.failures] == ["Bad", "Reserved"]
    assert not result.ok


def test_invalid_configuration_fails_before_preparing(home: Path) -> None:
    entries = [_local("Same", home / "a", 1), _local("same", home / "b", 2)]
    with pytest.raises(ValidationError):
        prepare_all_repositories(entries)
    assert not (home / "a").exists()


def test_empty_list_prepares_nothing() -> None:
    result = prepare_all_repositories([])
    assert result.prepared == []
    assert result.ok


def test_cancelled_preparation(home: Path) -> None:
    token = CancelToken()
    token.cancel()
    with pytest.raises(CanceledError):
        prepare_all_repositories([_local("Local", home / "rules")], cancel_token=token)


def test_sync_local_repositories_is_a_no_op(home: Path) -> None:
    prepared = prepare_all_repositories([_local("Local", home / "rules")]).prepared
    refreshed = sync_all_repositories(prepared)
    assert refreshed[0].status == SyncStatus.OK
    assert refreshed[0].sync.message == "Local repository"
