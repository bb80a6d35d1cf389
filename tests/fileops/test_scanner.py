from pathlib import Path

import pytest

from rulem.errors import CanceledError, PathValidationError, ScannerClosedError
from rulem.fileops.scanner import (
    DirectoryScanOptions,
    SecureDirectoryScanner,
    scan_with_filter,
)
from rulem.tasks import CancelToken


def _touch(path: Path, content: str = "x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    root = tmp_path / "tree"
    _touch(root / "b.md")
    _touch(root / "a.md", "longer content")
    _touch(root / "docs" / "guide.md")
    _touch(root / "docs" / "deep" / "note.md")
    _touch(root / "node_modules" / "pkg.md")
    _touch(root / ".hidden" / "secret.md")
    _touch(root / ".dotfile.md")
    return root


def _paths(results) -> list[str]:
    return [item.path for item in results]


def test_scan_returns_relative_paths_in_name_order(tree: Path) -> None:
    with SecureDirectoryScanner(tree) as scanner:
        paths = _paths(scanner.scan())

    assert paths[:2] == [".dotfile.md", ".hidden/secret.md"]
    assert "a.md" in paths and "b.md" in paths
    assert paths.index("a.md") < paths.index("b.md")
    assert "docs/deep/note.md" in paths
    assert not any(path.startswith("node_modules") for path in paths)


def test_scan_respects_max_depth(tree: Path) -> None:
    options = DirectoryScanOptions(max_depth=2)
    with SecureDirectoryScanner(tree, options) as scanner:
        paths = _paths(scanner.scan())

    assert "docs/guide.md" in paths
    assert "docs/deep/note.md" not in paths


def test_scan_excludes_hidden_when_requested(tree: Path) -> None:
    options = DirectoryScanOptions(include_hidden=False)
    with SecureDirectoryScanner(tree, options) as scanner:
        paths = _paths(scanner.scan())

    assert ".dotfile.md" not in paths
    assert ".hidden/secret.md" not in paths


def test_skip_patterns_apply_to_hidden_directories(tree: Path) -> None:
    options = DirectoryScanOptions(include_hidden=True, skip_patterns=[".hidden"])
    with SecureDirectoryScanner(tree, options) as scanner:
        paths = _paths(scanner.scan())

    assert ".hidden/secret.md" not in paths
    assert "node_modules/pkg.md" in paths


def test_file_and_dir_filters(tree: Path) -> None:
    options = DirectoryScanOptions(
        file_filter=lambda name: name.startswith("g"),
        dir_filter=lambda name: name == "docs",
    )
    with SecureDirectoryScanner(tree, options) as scanner:
        assert _paths(scanner.scan()) == ["docs/guide.md"]


def test_symlink_escaping_root_is_skipped(tree: Path, tmp_path: Path) -> None:
    outside = _touch(tmp_path / "outside" / "leak.md")
    (tree / "leak.md").symlink_to(outside)
    (tree / "escape").symlink_to(outside.parent)

    with SecureDirectoryScanner(tree) as scanner:
        paths = _paths(scanner.scan())

    assert "leak.md" not in paths
    assert not any(path.startswith("escape") for path in paths)


def test_symlink_inside_root_is_followed(tree: Path) -> None:
    (tree / "alias.md").symlink_to(tree / "a.md")
    with SecureDirectoryScanner(tree) as scanner:
        results = {item.path: item for item in scanner.scan()}

    assert results["alias.md"].size == results["a.md"].size


def test_directory_symlink_loop_terminates(tree: Path) -> None:
    (tree / "docs" / "loop").symlink_to(tree / "docs")
    with SecureDirectoryScanner(tree) as scanner:
        paths = _paths(scanner.scan())

    assert paths.count("docs/guide.md") == 1


def test_directory_symlink_does_not_hide_its_target(tmp_path: Path) -> None:
    root = tmp_path / "root"
    _touch(root / "zrules" / "rule.md")
    (root / "alias").symlink_to(root / "zrules")

    with SecureDirectoryScanner(root) as scanner:
        paths = _paths(scanner.scan())

    assert paths == ["alias/rule.md", "zrules/rule.md"]


def test_nested_symlink_back_to_linked_directory_terminates(tmp_path: Path) -> None:
    root = tmp_path / "root"
    _touch(root / "zrules" / "rule.md")
    (root / "zrules" / "again").symlink_to(root / "zrules")
    (root / "alias").symlink_to(root / "zrules")

    with SecureDirectoryScanner(root) as scanner:
        paths = _paths(scanner.scan())

    assert paths == ["alias/rule.md", "zrules/rule.md"]


def test_stats_summarise_results(tree: Path) -> None:
    with SecureDirectoryScanner(tree) as scanner:
        results = scanner.scan()
        stats = scanner.stats()

    assert stats.total_files == len(results)
    assert stats.largest_file == "a.md"
    assert stats.total_size == sum(item.size for item in results)
    assert stats.skipped_directories >= 1


def test_cancelled_scan_raises(tree: Path) -> None:
    token = CancelToken()
    token.cancel()
    with SecureDirectoryScanner(tree, cancel_token=token) as scanner:
        with pytest.raises(CanceledError):
            scanner.scan()


def test_closed_scanner_refuses_to_scan(tree: Path) -> None:
    scanner = SecureDirectoryScanner(tree)
    scanner.close()
    with pytest.raises(ScannerClosedError):
        scanner.scan()


def test_empty_scan_path_is_rejected() -> None:
    with pytest.raises(PathValidationError):
        SecureDirectoryScanner("  ")


def test_scan_with_filter_skips_hidden(tree: Path) -> None:
    results = scan_with_filter(tree, lambda name: name.endswith(".md"), max_depth=2)
    assert _paths(results) == ["a.md", "b.md", "docs/guide.md"]
