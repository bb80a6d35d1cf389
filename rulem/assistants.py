from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

from rulem.errors import ValidationError
from rulem.filemanager.manager import FileManager


class AssistantId(str, Enum):
    COPILOT = "copilot"
    COPILOT_INSTRUCTIONS = "copilot-instructions"
    CURSOR = "cursor"
    CLAUDE = "claude"
    GEMINI_CLI = "gemini-cli"
    OPENCODE = "opencode"
    WINDSURF = "windsurf"
    DEFAULT = "default"


class RenameMode(str, Enum):
    NONE = "none"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    FULL = "full"


@dataclass(frozen=True)
class AssistantTarget:
    assistant_id: AssistantId
    label: str
    explanation: str
    rule_dir: str
    rename: RenameMode = RenameMode.NONE
    new_name: str = ""


ASSISTANT_TARGETS: dict[AssistantId, AssistantTarget] = {
    AssistantId.COPILOT: AssistantTarget(
        assistant_id=AssistantId.COPILOT,
        label="GitHub Copilot - General instructions",
        explanation="Added to every Copilot chat message.",
        rule_dir=".github",
        rename=RenameMode.FULL,
        new_name="copilot-instructions.md",
    ),
    AssistantId.COPILOT_INSTRUCTIONS: AssistantTarget(
        assistant_id=AssistantId.COPILOT_INSTRUCTIONS,
        label="GitHub Copilot - Instructions",
        explanation="Attached by Copilot depending on the files in the chat context.",
        rule_dir=os.path.join(".github", "instructions"),
        rename=RenameMode.SUFFIX,
        new_name=".instructions.md",
    ),
    AssistantId.CURSOR: AssistantTarget(
        assistant_id=AssistantId.CURSOR,
        label="Cursor rules",
        explanation="Project rules; run inside a subdirectory to scope them to it.",
        rule_dir=os.path.join(".cursor", "rules"),
    ),
    AssistantId.CLAUDE: AssistantTarget(
        assistant_id=AssistantId.CLAUDE,
        label="Claude Code",
        explanation="Project memory file loaded into every session.",
        rule_dir="",
        rename=RenameMode.FULL,
        new_name="CLAUDE.md",
    ),
    AssistantId.GEMINI_CLI: AssistantTarget(
        assistant_id=AssistantId.GEMINI_CLI,
        label="Gemini CLI",
        explanation="Context file added to every Gemini CLI prompt.",
        rule_dir="",
        rename=RenameMode.FULL,
        new_name="GEMINI.md",
    ),
    AssistantId.OPENCODE: AssistantTarget(
        assistant_id=AssistantId.OPENCODE,
        label="AGENTS.md",
        explanation="General instructions file read by OpenCode and similar tools.",
        rule_dir="",
        rename=RenameMode.FULL,
        new_name="AGENTS.md",
    ),
    AssistantId.WINDSURF: AssistantTarget(
        assistant_id=AssistantId.WINDSURF,
        label="Windsurf",
        explanation="Workspace rules file read by Windsurf.",
        rule_dir="",
        rename=RenameMode.FULL,
        new_name=".windsurfrules",
    ),
    AssistantId.DEFAULT: AssistantTarget(
        assistant_id=AssistantId.DEFAULT,
        label="Current directory",
        explanation="Keep the file's own name in the current directory.",
        rule_dir="",
    ),
}


def assistant_target(assistant: AssistantId | str) -> AssistantTarget:
    try:
        assistant_id = assistant if isinstance(assistant, AssistantId) else AssistantId(assistant)
    except ValueError as exc:
        raise ValidationError(f"Unsupported assistant: {assistant}") from exc
    return ASSISTANT_TARGETS[assistant_id]


def _strip_extension(file_name: str) -> str:
    stem, ext = os.path.splitext(file_name)
    return stem if ext else file_name


def renamed(target: AssistantTarget, file_name: str) -> str:
    if target.rename == RenameMode.FULL:
        return target.new_name
    if target.rename == RenameMode.PREFIX:
        return f"{target.new_name}{file_name}"
    if target.rename == RenameMode.SUFFIX and target.new_name:
        return f"{_strip_extension(file_name)}{target.new_name}"
    return file_name


def destination_for(target: AssistantTarget, file_name: str) -> str:
    """CWD-relative destination for ``file_name`` under ``target``'s layout."""
    name = renamed(target, os.path.basename(file_name))
    if not target.rule_dir:
        return name
    return os.path.join(target.rule_dir, name)


def migrate_rule(
    manager: FileManager,
    storage_path: str,
    target: AssistantTarget,
    symlink: bool = False,
    overwrite: bool = False,
) -> str:
    destination = destination_for(target, storage_path)
    if symlink:
        return manager.create_symlink_from_storage(storage_path, destination, overwrite)
    return manager.copy_file_from_storage(storage_path, destination, overwrite)
