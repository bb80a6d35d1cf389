"""Build the tool registry across every configured repository."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from rulem.filemanager.scan import scan_repository
from rulem.errors import CanceledError, RulemError
from rulem.log import Logger, get_logger
from rulem.repository.models import PreparedRepository, RepositoryFailure
from rulem.rules.models import RuleFile, RuleFileTool, SkippedFile
from rulem.rules.processor import RuleFileProcessor, build_tool_registry
from rulem.tasks import CancelToken, check_cancelled


@dataclass
class RuleDiscovery:
    tools: dict[str, RuleFileTool] = field(default_factory=dict)
    skipped: list[SkippedFile] = field(default_factory=list)
    failures: list[RepositoryFailure] = field(default_factory=list)

    @property
    def rule_files(self) -> list[RuleFile]:
        return [tool.rule_file for tool in self.tools.values()]


def discover_rule_tools(
    prepared: Sequence[PreparedRepository],
    logger: Optional[Logger] = None,
    cancel_token: Optional[CancelToken] = None,
) -> RuleDiscovery:
    """Scan and parse each repository, then name tools in configured order.

    Every file is validated against the root of the repository it came from.
    """
    log = logger or get_logger(__name__)
    discovery = RuleDiscovery()
    rule_files: list[RuleFile] = []

    for repository in prepared:
        check_cancelled(cancel_token, "rule discovery")
        try:
            storage_dir, items = scan_repository(repository, log, cancel_token)
        except CanceledError:
            raise
        except RulemError as exc:
            log.error("Repository scan failed", repository_id=repository.id, error=exc.message)
            discovery.failures.append(
                RepositoryFailure(repository.id, repository.name, exc.user_message())
            )
            continue

        processor = RuleFileProcessor(storage_dir, logger=log)
        rule_files.extend(processor.parse_rule_files(items))
        discovery.skipped.extend(processor.skipped)

    discovery.tools = build_tool_registry(rule_files)
    log.info(
        "Rule discovery completed",
        tool_count=len(discovery.tools),
        skipped=len(discovery.skipped),
        failed_repositories=len(discovery.failures),
    )
    return discovery
