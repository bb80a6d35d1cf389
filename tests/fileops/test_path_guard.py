import os
from pathlib import Path

import pytest

from rulem.errors import ContainmentError, PathValidationError, ValidationReason
from rulem.fileops import guard
from rulem.fileops.guard import (
    is_reserved_directory,
    is_within,
    reserved_directories,
    sanitize_filename,
    sanitize_identifier,
    validate_content_security,
    validate_cwd_path,
    validate_file_access,
    validate_file_in_directory,
    validate_file_size_limit,
    validate_path_in_home,
    validate_path_security,
    validate_storage_path,
)


def _reason(excinfo) -> ValidationReason:
    return excinfo.value.reason


# --- validate_path_security ---


def test_path_security_rejects_empty() -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_path_security("   ")
    assert _reason(excinfo) == ValidationReason.EMPTY_PATH


@pytest.mark.parametrize("path", ["../etc", "rules/../../x", "a/..", "..\\windows"])
def test_path_security_rejects_traversal(path: str) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_path_security(path)
    assert _reason(excinfo) == ValidationReason.TRAVERSAL


def test_path_security_rejects_reserved_absolute() -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_path_security("/etc/passwd")
    assert _reason(excinfo) == ValidationReason.RESERVED
    assert excinfo.value.hint


def test_path_security_accepts_relative_and_home(home: Path) -> None:
    validate_path_security("rules/python.md")
    validate_path_security(str(home / "rules"))


# --- validate_cwd_path ---


def test_cwd_path_accepts_nested_relative() -> None:
    validate_cwd_path(".cursor/rules/python.md")


@pytest.mark.parametrize(
    "path, reason",
    [
        ("", ValidationReason.EMPTY_PATH),
        ("/tmp/rule.md", ValidationReason.NOT_RELATIVE),
        ("../outside.md", ValidationReason.TRAVERSAL),
        ("a/../../b.md", ValidationReason.TRAVERSAL),
    ],
)
def test_cwd_path_rejections(path: str, reason: ValidationReason) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_cwd_path(path)
    assert _reason(excinfo) == reason


# --- validate_storage_path ---


def test_storage_path_accepts_home_relative(home: Path) -> None:
    (home / "rules").mkdir()
    validate_storage_path("~/rules")


def test_storage_path_requires_absolute_or_home() -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_storage_path("rules")
    assert _reason(excinfo) == ValidationReason.NOT_ABSOLUTE_OR_HOME


def test_storage_path_requires_existing_parent(home: Path) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_storage_path(str(home / "missing" / "rules"))
    assert _reason(excinfo) == ValidationReason.PARENT_MISSING


def test_storage_path_rejects_symlink_into_reserved(home: Path) -> None:
    link = home / "sneaky"
    link.symlink_to("/etc")
    with pytest.raises(PathValidationError) as excinfo:
        validate_storage_path(str(link))
    assert _reason(excinfo) == ValidationReason.RESERVED


def test_storage_path_rejects_ssh_directory(home: Path) -> None:
    (home / ".ssh").mkdir()
    with pytest.raises(PathValidationError) as excinfo:
        validate_storage_path(str(home / ".ssh" / "rules"))
    assert _reason(excinfo) == ValidationReason.RESERVED


# --- validate_path_in_home ---


def test_path_in_home_returns_relative(home: Path) -> None:
    assert validate_path_in_home(home / "a" / "b") == os.path.join("a", "b")


def test_path_in_home_rejects_outside(tmp_path: Path) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_path_in_home(tmp_path / "elsewhere")
    assert _reason(excinfo) == ValidationReason.OUTSIDE_HOME


# --- reserved directories ---


def test_filesystem_root_is_reserved() -> None:
    assert is_reserved_directory("/")


def test_reserved_children_are_reserved() -> None:
    assert is_reserved_directory("/usr/bin/env")
    assert is_reserved_directory("/etc")


def test_temp_and_home_are_not_reserved(home: Path) -> None:
    assert not is_reserved_directory(home)
    assert not is_reserved_directory(home / "rules")


def test_reserved_table_per_host(home: Path) -> None:
    assert "C:\\Windows" in reserved_directories("windows")
    assert "/System" in reserved_directories("darwin")
    assert "/etc" in reserved_directories("unix")
    assert str(home / ".gnupg") in reserved_directories("unix")


def test_case_insensitive_hosts_fold_paths(monkeypatch) -> None:
    monkeypatch.setattr(guard, "_host", lambda: "darwin")
    assert guard._fold("/Users/Me") == "/users/me"
    monkeypatch.setattr(guard, "_host", lambda: "unix")
    assert guard._fold("/Users/Me") == "/Users/Me"


def test_is_within() -> None:
    assert is_within("/a/b/c", "/a/b")
    assert is_within("/a/b", "/a/b")
    assert not is_within("/a/bc", "/a/b")
    assert not is_within("/a", "/a/b")


# --- validate_file_in_directory ---


def test_file_in_directory_accepts_contained(tmp_path: Path) -> None:
    target = tmp_path / "rule.md"
    target.write_text("x", encoding="utf-8")
    validate_file_in_directory(target, tmp_path)


def test_file_in_directory_rejects_escape(tmp_path: Path) -> None:
    base = tmp_path / "base"
    base.mkdir()
    outside = tmp_path / "outside.md"
    outside.write_text("x", encoding="utf-8")
    with pytest.raises(ContainmentError):
        validate_file_in_directory(outside, base)


def test_file_in_directory_rejects_symlink_escape(tmp_path: Path) -> None:
    base = tmp_path / "base"
    base.mkdir()
    outside = tmp_path / "secret.md"
    outside.write_text("x", encoding="utf-8")
    (base / "link.md").symlink_to(outside)
    with pytest.raises(ContainmentError):
        validate_file_in_directory(base / "link.md", base)


def test_file_in_directory_rejects_directories(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    with pytest.raises(PathValidationError) as excinfo:
        validate_file_in_directory(tmp_path / "sub", tmp_path)
    assert _reason(excinfo) == ValidationReason.IS_DIRECTORY


def test_file_in_directory_reports_missing(tmp_path: Path) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_file_in_directory(tmp_path / "nope.md", tmp_path)
    assert _reason(excinfo) == ValidationReason.TARGET_MISSING


# --- sanitizers ---


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("rule.md", "rule.md"),
        ("dir/rule.md", "rule.md"),
        ("  spaced.md  ", "spaced.md"),
        ("a..b.md", "ab.md"),
    ],
)
def test_sanitize_filename(raw: str, expected: str) -> None:
    assert sanitize_filename(raw) == expected


@pytest.mark.parametrize("raw", ["", "..", "dir/.."])
def test_sanitize_filename_rejects(raw: str) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        sanitize_filename(raw)
    assert _reason(excinfo) == ValidationReason.INVALID_FILENAME


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("My Rule", "My_Rule"),
        ("python-style", "python-style"),
        ("a  --  b", "a_b"),
        ("weird!@#name", "weirdname"),
        ("__edge__", "edge"),
    ],
)
def test_sanitize_identifier(raw: str, expected: str) -> None:
    assert sanitize_identifier(raw, 100) == expected


def test_sanitize_identifier_caps_length() -> None:
    assert sanitize_identifier("a" * 150, 100) == "a" * 100


@pytest.mark.parametrize("raw", ["", "   ", "!!!"])
def test_sanitize_identifier_rejects_empty(raw: str) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        sanitize_identifier(raw, 100)
    assert _reason(excinfo) == ValidationReason.INVALID_IDENTIFIER


# --- content ---


def test_content_security_accepts_markdown() -> None:
    validate_content_security("# Title\n\n\tIndented\r\nline\n")


@pytest.mark.parametrize(
    "content",
    [
        "null\x00byte",
        "bell\x07",
        "<SCRIPT>alert(1)</script>",
        "[x](javascript:alert(1))",
        "call eval(x)",
        '<img onerror="x">',
    ],
)
def test_content_security_rejects(content: str) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_content_security(content)
    assert _reason(excinfo) == ValidationReason.MALICIOUS_CONTENT


# --- size and access ---


def test_size_limit(tmp_path: Path) -> None:
    target = tmp_path / "big.md"
    target.write_bytes(b"x" * 11)
    validate_file_size_limit(target, 11)
    with pytest.raises(PathValidationError) as excinfo:
        validate_file_size_limit(target, 10)
    assert _reason(excinfo) == ValidationReason.SIZE_EXCEEDED


def test_size_limit_requires_positive_limit(tmp_path: Path) -> None:
    target = tmp_path / "rule.md"
    target.write_text("x", encoding="utf-8")
    with pytest.raises(ValueError):
        validate_file_size_limit(target, 0)


def test_file_access_rejects_directory(tmp_path: Path) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_file_access(tmp_path)
    assert _reason(excinfo) == ValidationReason.IS_DIRECTORY


def test_file_access_reads_regular_file(tmp_path: Path) -> None:
    target = tmp_path / "rule.md"
    target.write_text("x", encoding="utf-8")
    validate_file_access(target)
    validate_file_access(target, require_write=True)
