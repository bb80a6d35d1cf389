"""Rule file data models."""

from __future__ import annotations

from dataclasses import dataclass

from rulem.constants import APPLY_TO_LABEL
from rulem.errors import RulemError


@dataclass(frozen=True)
class RuleFile:
    file_name: str
    file_path: str
    description: str
    body: str
    name: str = ""
    apply_to: str = ""


@dataclass(frozen=True)
class RuleFileTool:
    tool_name: str
    tool_description: str
    rule_file: RuleFile


@dataclass(frozen=True)
class SkippedFile:
    path: str
    error: RulemError

    @property
    def reason(self) -> str:
        return self.error.message


def tool_description_for(rule_file: RuleFile) -> str:
    if rule_file.apply_to:
        return f"{rule_file.description} ({APPLY_TO_LABEL}: {rule_file.apply_to})"
    return rule_file.description
