from enum import Enum
from pathlib import Path
from typing import Optional, Union


PathLike = Union[str, Path]


class RulemError(Exception):
    """Base user-facing application error."""

    hint: Optional[str] = None

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        self.message = message
        if hint is not None:
            self.hint = hint
        super().__init__(message)

    def user_message(self) -> str:
        if self.hint:
            return f"{self.message} ({self.hint})"
        return self.message


class RulemFileError(RulemError):
    def __init__(
        self, path: Optional[PathLike], message: str, hint: Optional[str] = None
    ) -> None:
        self.path = None if path is None else str(path)
        text = message if self.path is None else f"{message}: {self.path}"
        super().__init__(text, hint=hint)
        self.message = message


class ValidationReason(str, Enum):
    EMPTY_PATH = "empty_path"
    TRAVERSAL = "traversal"
    NOT_ABSOLUTE_OR_HOME = "not_absolute_or_home"
    NOT_RELATIVE = "not_relative"
    NOT_A_DIRECTORY = "not_a_directory"
    RESERVED = "reserved"
    PARENT_MISSING = "parent_missing"
    PARENT_INACCESSIBLE = "parent_inaccessible"
    TARGET_MISSING = "target_missing"
    NOT_A_FILE = "not_a_file"
    IS_DIRECTORY = "is_directory"
    SIZE_EXCEEDED = "size_exceeded"
    INVALID_FILENAME = "invalid_filename"
    INVALID_IDENTIFIER = "invalid_identifier"
    MALICIOUS_CONTENT = "malicious_content"
    OUTSIDE_HOME = "outside_home"


_REASON_HINTS = {
    ValidationReason.RESERVED: "choose a directory you own, for example under ~/",
    ValidationReason.OUTSIDE_HOME: "pick a location inside your home directory",
    ValidationReason.NOT_ABSOLUTE_OR_HOME: "use an absolute path or one starting with ~/",
}


class ValidationError(RulemError):
    """Input rejected before any filesystem mutation."""


class PathValidationError(ValidationError):
    def __init__(
        self,
        reason: ValidationReason,
        message: str,
        path: Optional[PathLike] = None,
    ) -> None:
        self.reason = reason
        self.path = None if path is None else str(path)
        text = message if self.path is None else f"{message}: {self.path}"
        super().__init__(text, hint=_REASON_HINTS.get(reason))


class NotFoundError(RulemFileError):
    pass


class FirstRunRequiredError(NotFoundError):
    def __init__(self, path: PathLike) -> None:
        super().__init__(
            path, "No configuration found, first-time setup required"
        )


class AlreadyExistsError(RulemFileError):
    def __init__(self, path: PathLike) -> None:
        super().__init__(
            path,
            "Destination already exists",
            hint="use overwrite to replace it",
        )


class AccessError(RulemFileError):
    pass


class FileIOError(RulemFileError):
    pass


class ContainmentError(RulemFileError):
    pass


class SymlinkError(RulemFileError):
    pass


class ParseError(RulemFileError):
    pass


class CanceledError(RulemError):
    def __init__(self, operation: str = "operation") -> None:
        super().__init__(f"{operation} was canceled")


class ExternalError(RulemError):
    """A collaborating process (git, editor) failed."""


class DirtyWorkingTreeError(ExternalError):
    def __init__(self, path: PathLike) -> None:
        super().__init__(
            f"Repository has uncommitted changes: {path}",
            hint="commit or stash your changes, then refresh",
        )


class ScannerClosedError(RulemError):
    def __init__(self) -> None:
        super().__init__("Scanner has been closed")


def translate_os_error(exc: OSError, path: PathLike, action: str) -> RulemFileError:
    if isinstance(exc, FileNotFoundError):
        return NotFoundError(path, f"Cannot {action}, path does not exist")
    if isinstance(exc, PermissionError):
        return AccessError(path, f"Cannot {action}, permission denied")
    detail = exc.strerror or str(exc)
    return FileIOError(path, f"Cannot {action} ({detail})")
