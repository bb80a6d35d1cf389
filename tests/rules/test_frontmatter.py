import pytest

from rulem.errors import ParseError
from rulem.rules.frontmatter import (
    load_frontmatter_yaml,
    parse_frontmatter,
    serialize_frontmatter,
    split_frontmatter,
)


def test_parse_basic_block() -> None:
    metadata, body = parse_frontmatter("---\ndescription: Python style\n---\n# Body\n")
    assert metadata == {"description": "Python style"}
    assert body == "# Body\n"


def test_parse_skips_bom_and_leading_blank_lines() -> None:
    text = "﻿\n\n---\ndescription: x\n---\nbody"
    metadata, body = parse_frontmatter(text)
    assert metadata["description"] == "x"
    assert body == "body"


def test_crlf_delimiters() -> None:
    block, body = split_frontmatter("---\r\nname: a\r\n---\r\nbody\r\n")
    assert block == "name: a\r\n"
    assert body == "body\r\n"


def test_empty_block_is_empty_mapping() -> None:
    metadata, body = parse_frontmatter("---\n---\nbody")
    assert metadata == {}
    assert body == "body"


@pytest.mark.parametrize(
    "text",
    [
        "# No frontmatter\n",
        "",
        "\n\n",
        "description: x\n---\n",
    ],
)
def test_missing_frontmatter(text: str) -> None:
    with pytest.raises(ParseError, match="does not start with a frontmatter block"):
        parse_frontmatter(text, "rule.md")


def test_unclosed_block() -> None:
    with pytest.raises(ParseError, match="not closed"):
        parse_frontmatter("---\ndescription: x\n# body\n")


def test_non_mapping_yaml_is_rejected() -> None:
    with pytest.raises(ParseError, match="mapping"):
        load_frontmatter_yaml("- a\n- b\n")


def test_invalid_yaml_is_rejected() -> None:
    with pytest.raises(ParseError, match="Invalid frontmatter YAML"):
        load_frontmatter_yaml("description: [unterminated\n")


def test_anchors_and_aliases_are_rejected() -> None:
    block = "base: &base\n  a: 1\ncopy: *base\n"
    with pytest.raises(ParseError):
        load_frontmatter_yaml(block)


def test_parse_error_carries_source_path() -> None:
    with pytest.raises(ParseError) as excinfo:
        parse_frontmatter("plain", "/rules/plain.md")
    assert excinfo.value.path == "/rules/plain.md"


def test_serialize_keeps_key_order_and_parses_back() -> None:
    text = serialize_frontmatter({"name": "Py", "description": "Style ü"}, "# Body\n")
    assert text.startswith("---\nname: Py\ndescription: Style ü\n---\n")
    metadata, body = parse_frontmatter(text)
    assert list(metadata) == ["name", "description"]
    assert body == "# Body\n"
