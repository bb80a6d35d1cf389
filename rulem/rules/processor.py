"""Turn scanned Markdown files into rule files and named tools."""

from __future__ import annotations

import os
import re
from typing import Any, Iterable, Optional

from rulem.constants import (
    DEFAULT_MAX_RULE_FILE_SIZE,
    FALLBACK_TOOL_NAME,
    MAX_APPLY_TO_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TOOL_NAME_LENGTH,
)
from rulem.errors import (
    CanceledError,
    ContainmentError,
    FileIOError,
    ParseError,
    PathLike,
    RulemError,
    ValidationError,
    translate_os_error,
)
from rulem.filemanager.models import FileItem
from rulem.fileops.guard import (
    is_within,
    sanitize_filename,
    sanitize_identifier,
    validate_content_security,
    validate_file_access,
    validate_file_in_directory,
    validate_file_size_limit,
    validate_path_security,
)
from rulem.fileops.symlinks import is_symlink, resolve_symlink, validate_symlink_security
from rulem.log import Logger, get_logger
from rulem.rules.frontmatter import parse_frontmatter
from rulem.rules.models import RuleFile, RuleFileTool, SkippedFile, tool_description_for

_NON_WORD = re.compile(r"[^A-Za-z0-9]+")

APPLY_TO_KEYS = ("applyTo", "apply_to")


def _optional_field(metadata: dict[str, Any], keys: tuple[str, ...], limit: int, label: str) -> str:
    for key in keys:
        if key in metadata and metadata[key] is not None:
            return _string_field(metadata[key], limit, label)
    return ""


def _string_field(value: Any, limit: int, label: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"Frontmatter field '{label}' must be a string")
    text = value.strip()
    if len(text) > limit:
        raise ValidationError(f"Frontmatter field '{label}' exceeds {limit} characters")
    try:
        validate_content_security(text)
    except ValidationError as exc:
        raise ValidationError(f"Frontmatter field '{label}': {exc.message}") from exc
    return text


def tool_base_name(rule_file: RuleFile) -> str:
    """Identifier-safe tool name before collision handling."""
    source = rule_file.name or os.path.splitext(rule_file.file_name)[0]
    try:
        identifier = sanitize_identifier(source, MAX_TOOL_NAME_LENGTH)
    except ValidationError:
        return FALLBACK_TOOL_NAME
    name = _NON_WORD.sub("_", identifier).strip("_")
    return name or FALLBACK_TOOL_NAME


def build_tool_registry(rule_files: Iterable[RuleFile]) -> dict[str, RuleFileTool]:
    registry: dict[str, RuleFileTool] = {}
    for rule_file in rule_files:
        base = tool_base_name(rule_file)
        name = base
        suffix = 1
        while name in registry:
            tag = f"_{suffix}"
            name = base[: MAX_TOOL_NAME_LENGTH - len(tag)] + tag
            suffix += 1
        registry[name] = RuleFileTool(
            tool_name=name,
            tool_description=tool_description_for(rule_file),
            rule_file=rule_file,
        )
    return registry


class RuleFileProcessor:
    """Validate and parse rule files that live under one storage directory.

    A file that fails any check is skipped and recorded in :attr:`skipped`;
    processing a batch never aborts because of a single bad file. Cancellation
    is the exception and always propagates.
    """

    def __init__(
        self,
        storage_dir: PathLike,
        max_file_size: int = DEFAULT_MAX_RULE_FILE_SIZE,
        logger: Optional[Logger] = None,
    ) -> None:
        if max_file_size <= 0:
            raise ValueError(f"invalid size limit: {max_file_size}")
        self.storage_dir = os.path.abspath(os.fspath(storage_dir))
        self.max_file_size = max_file_size
        self.skipped: list[SkippedFile] = []
        self._logger = logger or get_logger(__name__)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def _containment_base(self, path: str) -> str:
        if is_within(path, self.storage_dir):
            return self.storage_dir
        return os.path.realpath(self.storage_dir)

    def _validate_access(self, path: str) -> None:
        base = self._containment_base(path)
        validate_file_in_directory(path, base)
        validate_path_security(os.path.relpath(path, base))
        validate_file_size_limit(path, self.max_file_size)
        validate_file_access(path)

        if is_symlink(path):
            validate_symlink_security(path, [self.storage_dir])
            target = resolve_symlink(path)
            if not is_within(target, os.path.realpath(self.storage_dir)):
                raise ContainmentError(path, "Symlink target escapes storage directory")

    def _read(self, path: str) -> str:
        try:
            with open(path, "rb") as handle:
                data = handle.read(self.max_file_size + 1)
        except OSError as exc:
            raise translate_os_error(exc, path, "read rule file") from exc
        if len(data) > self.max_file_size:
            raise FileIOError(path, "File grew past the size limit while reading")
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(path, f"File is not valid UTF-8: {exc.reason}") from exc

    def parse_rule_file(self, item: FileItem) -> RuleFile:
        path = os.path.abspath(item.path)
        self._validate_access(path)
        text = self._read(path)
        validate_content_security(text)

        metadata, body = parse_frontmatter(text, path)
        if "description" not in metadata or metadata["description"] is None:
            raise ValidationError("Frontmatter is missing 'description'")
        description = _string_field(metadata["description"], MAX_DESCRIPTION_LENGTH, "description")
        if not description:
            raise ValidationError("Frontmatter 'description' cannot be empty")

        return RuleFile(
            file_name=item.name or sanitize_filename(os.path.basename(path)),
            file_path=path,
            description=description,
            body=body,
            name=_optional_field(metadata, ("name",), MAX_NAME_LENGTH, "name"),
            apply_to=_optional_field(metadata, APPLY_TO_KEYS, MAX_APPLY_TO_LENGTH, "applyTo"),
        )

    def parse_rule_files(self, items: Iterable[FileItem]) -> list[RuleFile]:
        self.skipped = []
        rule_files = []
        for item in items:
            try:
                rule_files.append(self.parse_rule_file(item))
            except CanceledError:
                raise
            except RulemError as exc:
                self._logger.info("Skipping rule file", path=item.path, reason=exc.message)
                self.skipped.append(SkippedFile(item.path, exc))

        self._logger.debug(
            "Parsed rule files", parsed=len(rule_files), skipped=self.skipped_count
        )
        return rule_files

    def process_rule_files(self, items: Iterable[FileItem]) -> dict[str, RuleFileTool]:
        return build_tool_registry(self.parse_rule_files(items))
