"""Path and content validation shared by every filesystem entry point.

The functions here are pure apart from the stat and symlink resolution calls
they need to decide whether a path is safe. Each rejection raises a
:class:`~rulem.errors.PathValidationError` whose ``reason`` names the failure
mode, so callers can branch on it without parsing messages.
"""

from __future__ import annotations

import os
import re
import stat
import sys
import tempfile
from pathlib import Path, PurePath
from typing import Optional

from rulem.constants import SUSPICIOUS_CONTENT_PATTERNS
from rulem.errors import (
    ContainmentError,
    PathLike,
    PathValidationError,
    ValidationReason,
    translate_os_error,
)


UNIX_RESERVED_DIRECTORIES: tuple[str, ...] = (
    "/bin",
    "/sbin",
    "/usr/bin",
    "/usr/sbin",
    "/etc",
    "/boot",
    "/dev",
    "/proc",
    "/sys",
    "/var/log",
    "/var/lib",
    "/var/cache",
    "/root",
)

DARWIN_RESERVED_DIRECTORIES: tuple[str, ...] = (
    "/System",
    "/usr/bin",
    "/usr/sbin",
    "/bin",
    "/sbin",
    "/etc",
    "/var/log",
    "/var/db",
    "/var/root",
    "/Library/System",
    "/Applications",
    "/private/etc",
)

WINDOWS_RESERVED_DIRECTORIES: tuple[str, ...] = (
    "C:\\Windows",
    "C:\\Program Files",
    "C:\\Program Files (x86)",
    "C:\\System32",
    "C:\\ProgramData\\Microsoft",
)

USER_CRITICAL_DIRECTORIES: tuple[str, ...] = (".ssh", ".gnupg")

_SEPARATOR_RUN = re.compile(r"[ _-]+")
_IDENTIFIER_DROP = re.compile(r"[^A-Za-z0-9 _.-]")


def _host() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "darwin"
    return "unix"


def _fold(path: str) -> str:
    # Windows and macOS default filesystems compare names case-insensitively.
    if _host() in ("windows", "darwin"):
        return path.casefold()
    return path


def _resolve(path: str) -> str:
    return os.path.normpath(os.path.realpath(path))


def is_within(path: PathLike, base: PathLike) -> bool:
    """Lexical containment test; both sides should already be absolute."""
    try:
        rel = os.path.relpath(os.fspath(path), os.fspath(base))
    except ValueError:
        return False
    return rel != os.pardir and not rel.startswith(os.pardir + os.sep)


def expand_path(path: PathLike) -> str:
    text = os.fspath(path)
    if text.startswith("~/"):
        return str(Path.home() / text[2:])
    return text


def validate_path_security(path: PathLike) -> None:
    text = os.fspath(path)
    if not text.strip():
        raise PathValidationError(ValidationReason.EMPTY_PATH, "Path cannot be empty")
    if ".." in text:
        raise PathValidationError(
            ValidationReason.TRAVERSAL, "Path traversal not allowed", text
        )
    clean = os.path.normpath(text)
    if ".." in clean:
        raise PathValidationError(
            ValidationReason.TRAVERSAL, "Path traversal not allowed", text
        )
    if os.path.isabs(text) and is_reserved_directory(clean):
        raise PathValidationError(
            ValidationReason.RESERVED, "Cannot use system or reserved directories", clean
        )


def validate_cwd_path(dest_path: PathLike) -> None:
    text = os.fspath(dest_path)
    if not text:
        raise PathValidationError(
            ValidationReason.EMPTY_PATH, "Destination path cannot be empty"
        )
    if os.path.isabs(text):
        raise PathValidationError(
            ValidationReason.NOT_RELATIVE,
            "Destination path must be relative to the current working directory",
            text,
        )
    if ".." in text or ".." in os.path.normpath(text):
        raise PathValidationError(
            ValidationReason.TRAVERSAL,
            "Path traversal not allowed in destination path",
            text,
        )


def validate_file_in_directory(file_path: PathLike, base_dir: PathLike) -> None:
    abs_file = os.path.abspath(os.fspath(file_path))
    abs_base = os.path.abspath(os.fspath(base_dir))
    if not is_within(abs_file, abs_base):
        raise ContainmentError(abs_file, "File is not within base directory")

    try:
        info = os.lstat(abs_file)
    except FileNotFoundError:
        raise PathValidationError(
            ValidationReason.TARGET_MISSING, "File does not exist", os.path.basename(abs_file)
        ) from None
    except OSError as exc:
        raise translate_os_error(exc, abs_file, "access file") from exc

    if stat.S_ISLNK(info.st_mode):
        resolved = _resolve(abs_file)
        if not (is_within(resolved, abs_base) or is_within(resolved, _resolve(abs_base))):
            raise ContainmentError(abs_file, "Symlink resolves outside base directory")
        if not os.path.exists(resolved):
            raise PathValidationError(
                ValidationReason.TARGET_MISSING, "Symlink target does not exist", abs_file
            )
        if os.path.isdir(resolved):
            raise PathValidationError(
                ValidationReason.IS_DIRECTORY, "Path is a directory, not a file", abs_file
            )
    elif stat.S_ISDIR(info.st_mode):
        raise PathValidationError(
            ValidationReason.IS_DIRECTORY, "Path is a directory, not a file", abs_file
        )


def validate_path_in_home(target_path: PathLike) -> str:
    """Return ``target_path`` relative to the user's home directory."""
    home = os.path.normpath(str(Path.home()))
    target = os.path.normpath(os.path.abspath(expand_path(target_path)))
    if not is_within(target, home):
        raise PathValidationError(
            ValidationReason.OUTSIDE_HOME, "Path is outside home directory", target
        )
    return os.path.relpath(target, home)


def validate_storage_path(path: PathLike) -> None:
    trimmed = os.fspath(path).strip()
    if not trimmed:
        raise PathValidationError(
            ValidationReason.EMPTY_PATH, "Storage directory cannot be empty"
        )
    validate_path_security(trimmed)

    expanded = expand_path(trimmed)
    if not os.path.isabs(expanded) and not trimmed.startswith("~/"):
        raise PathValidationError(
            ValidationReason.NOT_ABSOLUTE_OR_HOME,
            "Path must be absolute or relative to home directory (~)",
            trimmed,
        )
    if os.path.lexists(expanded) and is_reserved_directory(_resolve(expanded)):
        raise PathValidationError(
            ValidationReason.RESERVED, "Path resolves to reserved directory", expanded
        )
    if is_reserved_directory(expanded):
        raise PathValidationError(
            ValidationReason.RESERVED, "Cannot use system or reserved directories", expanded
        )

    parent = os.path.dirname(os.path.normpath(expanded))
    if parent and parent != ".":
        try:
            os.stat(parent)
        except FileNotFoundError:
            raise PathValidationError(
                ValidationReason.PARENT_MISSING, "Parent directory does not exist", parent
            ) from None
        except OSError:
            raise PathValidationError(
                ValidationReason.PARENT_INACCESSIBLE, "Cannot access parent directory", parent
            ) from None


def reserved_directories(host: Optional[str] = None) -> list[str]:
    host = host or _host()
    if host == "windows":
        reserved = list(WINDOWS_RESERVED_DIRECTORIES)
    elif host == "darwin":
        reserved = list(DARWIN_RESERVED_DIRECTORIES)
    else:
        reserved = list(UNIX_RESERVED_DIRECTORIES)
    home = Path.home()
    reserved.extend(str(home / name) for name in USER_CRITICAL_DIRECTORIES)
    return reserved


def is_user_temp_directory(path: PathLike) -> bool:
    text = os.fspath(path)
    host = _host()
    if host == "darwin" and "/var/folders/" in text:
        return True
    if host == "unix" and (text == "/tmp" or text.startswith("/tmp/")):
        return True
    if host == "windows":
        lowered = text.casefold()
        if "\\temp\\" in lowered or "\\tmp\\" in lowered:
            return True
    system_temp = _resolve(tempfile.gettempdir())
    return _fold(text) == _fold(system_temp) or is_within(
        _fold(text), _fold(system_temp)
    )


def _is_filesystem_root(path: str) -> bool:
    if path in ("/", "\\"):
        return True
    drive, tail = os.path.splitdrive(path)
    return bool(drive) and tail in ("", "\\", "/")


def is_reserved_directory(path: PathLike) -> bool:
    try:
        abs_path = _resolve(os.path.abspath(os.fspath(path)))
    except (OSError, ValueError):
        return True
    if _is_filesystem_root(abs_path):
        return True

    folded = _fold(abs_path)
    home = Path.home()
    critical = {str(home / name) for name in USER_CRITICAL_DIRECTORIES}
    for reserved in reserved_directories():
        candidates = {_fold(os.path.normpath(reserved)), _fold(_resolve(reserved))}
        for candidate in candidates:
            if folded == candidate:
                return True
            if folded.startswith(candidate.rstrip(os.sep) + os.sep):
                if reserved not in critical and is_user_temp_directory(abs_path):
                    continue
                return True
    return False


def sanitize_filename(filename: str) -> str:
    if not filename:
        raise PathValidationError(
            ValidationReason.INVALID_FILENAME, "Filename cannot be empty"
        )
    clean = PurePath(filename).name.replace("..", "").strip()
    if clean in ("", ".", ".."):
        raise PathValidationError(
            ValidationReason.INVALID_FILENAME, "Invalid filename after sanitization", filename
        )
    if "/" in clean:
        raise PathValidationError(
            ValidationReason.INVALID_FILENAME, "Filename contains path separators", clean
        )
    return clean


def _collapse_separators(match: re.Match) -> str:
    run = match.group(0)
    if run == "-":
        return run
    return "_"


def sanitize_identifier(identifier: str, max_length: int) -> str:
    if not identifier or not identifier.strip():
        raise PathValidationError(
            ValidationReason.INVALID_IDENTIFIER, "Identifier cannot be empty"
        )
    kept = _IDENTIFIER_DROP.sub("", identifier).strip()
    result = _SEPARATOR_RUN.sub(_collapse_separators, kept).strip("_-.")
    if max_length > 0 and len(result) > max_length:
        result = result[:max_length].strip("_-.")
    if not result:
        raise PathValidationError(
            ValidationReason.INVALID_IDENTIFIER,
            "Identifier becomes empty after sanitization",
            identifier,
        )
    return result


def validate_content_security(content: str) -> None:
    if "\x00" in content:
        raise PathValidationError(
            ValidationReason.MALICIOUS_CONTENT, "Content contains null bytes"
        )
    for char in content:
        if ord(char) < 32 and char not in "\t\n\r":
            raise PathValidationError(
                ValidationReason.MALICIOUS_CONTENT, "Content contains control characters"
            )
    lowered = content.lower()
    for pattern in SUSPICIOUS_CONTENT_PATTERNS:
        if pattern in lowered:
            raise PathValidationError(
                ValidationReason.MALICIOUS_CONTENT,
                f"Content contains potentially malicious pattern '{pattern}'",
            )


def _stat_regular_file(file_path: str) -> os.stat_result:
    try:
        info = os.stat(file_path)
    except FileNotFoundError:
        raise PathValidationError(
            ValidationReason.TARGET_MISSING, "File does not exist", file_path
        ) from None
    except OSError as exc:
        raise translate_os_error(exc, file_path, "access file") from exc
    if stat.S_ISDIR(info.st_mode):
        raise PathValidationError(
            ValidationReason.IS_DIRECTORY, "Path is a directory, not a file", file_path
        )
    if not stat.S_ISREG(info.st_mode):
        raise PathValidationError(
            ValidationReason.NOT_A_FILE, "Path is not a regular file", file_path
        )
    return info


def validate_file_size_limit(file_path: PathLike, max_size: int) -> None:
    if max_size <= 0:
        raise ValueError(f"invalid size limit: {max_size}")
    text = os.fspath(file_path)
    info = _stat_regular_file(text)
    if info.st_size > max_size:
        raise PathValidationError(
            ValidationReason.SIZE_EXCEEDED,
            f"File size {info.st_size} bytes exceeds limit {max_size} bytes",
            text,
        )


def validate_file_access(file_path: PathLike, require_write: bool = False) -> None:
    text = os.fspath(file_path)
    _stat_regular_file(text)
    flags = os.O_WRONLY if require_write else os.O_RDONLY
    action = "open file for writing" if require_write else "open file for reading"
    try:
        fd = os.open(text, flags)
    except OSError as exc:
        raise translate_os_error(exc, text, action) from exc
    os.close(fd)
