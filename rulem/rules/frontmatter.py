"""Parse and serialize YAML frontmatter blocks.

The parser is a small state machine over lines: skip a BOM and leading blank
lines, expect an opening ``---``, collect YAML until the closing ``---`` and
hand everything after it back as the body. Anchors and aliases are refused so
a rule file cannot expand into something larger than it looks.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

import yaml

from rulem.errors import ParseError, PathLike


DELIMITER = "---"
_BOM = "\ufeff"


class _State(Enum):
    SEEK_OPEN = "seek_open"
    IN_BLOCK = "in_block"


class _NoAliasLoader(yaml.SafeLoader):
    def compose_node(self, parent: Any, index: Any) -> Any:
        event = self.peek_event()
        if isinstance(event, yaml.AliasEvent):
            raise yaml.YAMLError("aliases are not allowed in frontmatter")
        if isinstance(event, yaml.NodeEvent) and event.anchor is not None:
            raise yaml.YAMLError("anchors are not allowed in frontmatter")
        return super().compose_node(parent, index)


def _is_delimiter(line: str) -> bool:
    return line.rstrip("\r\n").rstrip() == DELIMITER


def split_frontmatter(text: str, source: Optional[PathLike] = None) -> tuple[str, str]:
    """Return ``(yaml_text, body)`` or raise :class:`ParseError`."""
    if text.startswith(_BOM):
        text = text[len(_BOM) :]

    lines = text.splitlines(keepends=True)
    state = _State.SEEK_OPEN
    block: list[str] = []
    for index, line in enumerate(lines):
        if state is _State.SEEK_OPEN:
            if not line.strip():
                continue
            if _is_delimiter(line):
                state = _State.IN_BLOCK
                continue
            raise ParseError(source, "File does not start with a frontmatter block")
        if _is_delimiter(line):
            return "".join(block), "".join(lines[index + 1 :])
        block.append(line)

    if state is _State.SEEK_OPEN:
        raise ParseError(source, "File does not start with a frontmatter block")
    raise ParseError(source, "Frontmatter block is not closed")


def load_frontmatter_yaml(block: str, source: Optional[PathLike] = None) -> dict[str, Any]:
    try:
        loaded = yaml.load(block, Loader=_NoAliasLoader)
    except yaml.YAMLError as exc:
        raise ParseError(source, f"Invalid frontmatter YAML ({exc})") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ParseError(source, "Frontmatter must be a YAML mapping")
    return loaded


def parse_frontmatter(text: str, source: Optional[PathLike] = None) -> tuple[dict[str, Any], str]:
    block, body = split_frontmatter(text, source)
    return load_frontmatter_yaml(block, source), body


def serialize_frontmatter(metadata: dict[str, Any], body: str) -> str:
    dumped = yaml.safe_dump(
        metadata,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
    return f"{DELIMITER}\n{dumped}{DELIMITER}\n{body}"
