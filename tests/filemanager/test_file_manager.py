import os
from pathlib import Path

import pytest

from rulem.errors import (
    AlreadyExistsError,
    ContainmentError,
    NotFoundError,
    PathValidationError,
    SymlinkError,
    ValidationReason,
)
from rulem.filemanager.manager import FileManager


@pytest.fixture
def manager(storage: Path):
    with FileManager(storage) as file_manager:
        yield file_manager


def test_requires_existing_storage(home: Path) -> None:
    with pytest.raises(NotFoundError):
        FileManager(home / "missing")


def test_rejects_reserved_storage() -> None:
    with pytest.raises(PathValidationError):
        FileManager("/etc")


def test_copy_file_to_storage(manager: FileManager, storage: Path, workdir: Path) -> None:
    (workdir / "rule.md").write_text("rule", encoding="utf-8")

    destination = manager.copy_file_to_storage("rule.md")

    assert destination == str(storage / "rule.md")
    assert (storage / "rule.md").read_text(encoding="utf-8") == "rule"


def test_copy_file_to_storage_with_new_name(manager: FileManager, storage: Path, workdir: Path) -> None:
    (workdir / "rule.md").write_text("rule", encoding="utf-8")
    manager.copy_file_to_storage("rule.md", new_name="renamed.md")
    assert (storage / "renamed.md").is_file()


@pytest.mark.parametrize("new_name", ["../escape.md", "sub/dir.md", "a\\b.md", "  padded.md"])
def test_copy_file_to_storage_rejects_bad_names(
    manager: FileManager, workdir: Path, new_name: str
) -> None:
    (workdir / "rule.md").write_text("rule", encoding="utf-8")
    with pytest.raises(PathValidationError) as excinfo:
        manager.copy_file_to_storage("rule.md", new_name=new_name)
    assert excinfo.value.reason == ValidationReason.INVALID_FILENAME


def test_copy_file_to_storage_refuses_existing(
    manager: FileManager, storage: Path, workdir: Path
) -> None:
    (workdir / "rule.md").write_text("new", encoding="utf-8")
    (storage / "rule.md").write_text("old", encoding="utf-8")

    with pytest.raises(AlreadyExistsError):
        manager.copy_file_to_storage("rule.md")
    assert (storage / "rule.md").read_text(encoding="utf-8") == "old"

    manager.copy_file_to_storage("rule.md", overwrite=True)
    assert (storage / "rule.md").read_text(encoding="utf-8") == "new"


def test_broken_symlink_counts_as_existing(
    manager: FileManager, storage: Path, workdir: Path
) -> None:
    (workdir / "rule.md").write_text("new", encoding="utf-8")
    (storage / "rule.md").symlink_to(storage / "gone.md")
    with pytest.raises(AlreadyExistsError):
        manager.copy_file_to_storage("rule.md")


def test_copy_file_to_storage_rejects_directories_and_missing(
    manager: FileManager, workdir: Path
) -> None:
    (workdir / "folder").mkdir()
    with pytest.raises(PathValidationError):
        manager.copy_file_to_storage("folder")
    with pytest.raises(NotFoundError):
        manager.copy_file_to_storage("absent.md")


def test_source_symlink_into_reserved_directory(manager: FileManager, workdir: Path) -> None:
    if not os.path.exists("/etc/hostname"):
        pytest.skip("no /etc/hostname on this host")
    (workdir / "hostname.md").symlink_to("/etc/hostname")
    with pytest.raises(SymlinkError, match="reserved"):
        manager.copy_file_to_storage("hostname.md")


def test_copy_file_from_storage(manager: FileManager, storage: Path, workdir: Path) -> None:
    (storage / "rule.md").write_text("rule", encoding="utf-8")

    destination = manager.copy_file_from_storage("rule.md", ".cursor/rules/rule.md")

    assert Path(destination) == workdir / ".cursor" / "rules" / "rule.md"
    assert Path(destination).read_text(encoding="utf-8") == "rule"
    assert not Path(destination).is_symlink()


def test_copy_file_from_storage_accepts_absolute_storage_path(
    manager: FileManager, storage: Path, workdir: Path
) -> None:
    (storage / "rule.md").write_text("rule", encoding="utf-8")
    manager.copy_file_from_storage(str(storage / "rule.md"), "rule.md")
    assert (workdir / "rule.md").is_file()


@pytest.mark.parametrize("dest", ["/tmp/rule.md", "../rule.md", ""])
def test_copy_file_from_storage_rejects_unsafe_destinations(
    manager: FileManager, storage: Path, workdir: Path, dest: str
) -> None:
    (storage / "rule.md").write_text("rule", encoding="utf-8")
    with pytest.raises(PathValidationError):
        manager.copy_file_from_storage("rule.md", dest)


def test_copy_file_from_storage_requires_file_in_storage(
    manager: FileManager, home: Path, workdir: Path
) -> None:
    (home / "outside.md").write_text("x", encoding="utf-8")
    with pytest.raises(ContainmentError):
        manager.copy_file_from_storage(str(home / "outside.md"), "rule.md")


def test_copy_file_from_storage_overwrite(manager: FileManager, storage: Path, workdir: Path) -> None:
    (storage / "rule.md").write_text("new", encoding="utf-8")
    (workdir / "rule.md").write_text("old", encoding="utf-8")

    with pytest.raises(AlreadyExistsError):
        manager.copy_file_from_storage("rule.md", "rule.md")
    manager.copy_file_from_storage("rule.md", "rule.md", overwrite=True)
    assert (workdir / "rule.md").read_text(encoding="utf-8") == "new"


def test_create_symlink_from_storage(manager: FileManager, storage: Path, workdir: Path) -> None:
    (storage / "rule.md").write_text("rule", encoding="utf-8")

    link = Path(manager.create_symlink_from_storage("rule.md", ".github/copilot-instructions.md"))

    assert link.is_symlink()
    assert not os.path.isabs(os.readlink(link))
    assert link.resolve() == (storage / "rule.md").resolve()


def test_create_symlink_replaces_existing_when_overwriting(
    manager: FileManager, storage: Path, workdir: Path
) -> None:
    (storage / "rule.md").write_text("rule", encoding="utf-8")
    (workdir / "CLAUDE.md").write_text("old", encoding="utf-8")

    with pytest.raises(AlreadyExistsError):
        manager.create_symlink_from_storage("rule.md", "CLAUDE.md")
    manager.create_symlink_from_storage("rule.md", "CLAUDE.md", overwrite=True)
    assert (workdir / "CLAUDE.md").is_symlink()


def test_broken_destination_symlink_counts_as_existing(
    manager: FileManager, storage: Path, workdir: Path
) -> None:
    (storage / "rule.md").write_text("rule", encoding="utf-8")
    (workdir / "out.md").symlink_to(workdir / "gone.md")

    with pytest.raises(AlreadyExistsError):
        manager.copy_file_from_storage("rule.md", "out.md")
    with pytest.raises(AlreadyExistsError):
        manager.create_symlink_from_storage("rule.md", "out.md")
    assert (workdir / "out.md").is_symlink()

    manager.copy_file_from_storage("rule.md", "out.md", overwrite=True)
    assert not (workdir / "out.md").is_symlink()
    assert (workdir / "out.md").read_text(encoding="utf-8") == "rule"


def test_broken_destination_symlink_replaced_by_link(
    manager: FileManager, storage: Path, workdir: Path
) -> None:
    (storage / "rule.md").write_text("rule", encoding="utf-8")
    (workdir / "out.md").symlink_to(workdir / "gone.md")

    link = Path(manager.create_symlink_from_storage("rule.md", "out.md", overwrite=True))

    assert link.resolve() == (storage / "rule.md").resolve()
    assert link.read_text(encoding="utf-8") == "rule"


def test_overwrite_refuses_directory_destination(
    manager: FileManager, storage: Path, workdir: Path
) -> None:
    (storage / "rule.md").write_text("rule", encoding="utf-8")
    (workdir / "rule.md").mkdir()
    with pytest.raises(PathValidationError):
        manager.copy_file_from_storage("rule.md", "rule.md", overwrite=True)


def test_scan_storage_finds_markdown_only(manager: FileManager, storage: Path) -> None:
    (storage / "a.md").write_text("a", encoding="utf-8")
    (storage / "b.mdc").write_text("b", encoding="utf-8")
    (storage / "notes.txt").write_text("c", encoding="utf-8")
    (storage / "nested").mkdir()
    (storage / "nested" / "c.MARKDOWN").write_text("c", encoding="utf-8")
    (storage / ".git").mkdir()
    (storage / ".git" / "ignored.md").write_text("x", encoding="utf-8")

    items = manager.scan_storage()

    assert sorted(item.name for item in items) == ["a.md", "b.mdc", "c.MARKDOWN"]
    assert all(os.path.isabs(item.path) for item in items)


def test_scan_storage_through_symlinked_root(home: Path, storage: Path) -> None:
    (storage / "a.md").write_text("a", encoding="utf-8")
    link = home / "linked-rules"
    link.symlink_to(storage)

    with FileManager(link) as file_manager:
        items = file_manager.scan_storage()

    assert [item.name for item in items] == ["a.md"]


def test_scan_cwd(manager: FileManager, workdir: Path) -> None:
    (workdir / "AGENTS.md").write_text("a", encoding="utf-8")
    (workdir / "node_modules").mkdir()
    (workdir / "node_modules" / "dep.md").write_text("x", encoding="utf-8")

    items = manager.scan_cwd()

    assert [item.name for item in items] == ["AGENTS.md"]
    assert manager.get_cwd_absolute_path(items[0]) == items[0].path


def test_resolve_storage_file(manager: FileManager, storage: Path) -> None:
    (storage / "rule.md").write_text("x", encoding="utf-8")
    assert manager.resolve_storage_file("rule.md") == str(storage / "rule.md")
    with pytest.raises(PathValidationError):
        manager.resolve_storage_file("missing.md")
