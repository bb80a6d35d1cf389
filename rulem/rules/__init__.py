from rulem.rules.discovery import RuleDiscovery, discover_rule_tools
from rulem.rules.frontmatter import parse_frontmatter, serialize_frontmatter, split_frontmatter
from rulem.rules.models import RuleFile, RuleFileTool, SkippedFile, tool_description_for
from rulem.rules.processor import RuleFileProcessor, build_tool_registry, tool_base_name

__all__ = [
    "RuleDiscovery",
    "RuleFile",
    "RuleFileProcessor",
    "RuleFileTool",
    "SkippedFile",
    "build_tool_registry",
    "discover_rule_tools",
    "parse_frontmatter",
    "serialize_frontmatter",
    "split_frontmatter",
    "tool_base_name",
    "tool_description_for",
]
