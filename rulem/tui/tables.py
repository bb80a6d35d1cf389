from collections import Counter
from typing import Mapping, Sequence

from rich.table import Column, Table

from rulem.repository.models import PreparedRepository, RepositoryEntry
from rulem.rules.models import RuleFileTool
from rulem.tui.enums import REPOSITORY_TYPE_STYLE, SYNC_STATUS_STYLE, UIStyle
from rulem.utils import compact_home_path


def _styled(value: str, style: str) -> str:
    return f"[{style}]{value}[/{style}]"


class RepositoryTable:
    @staticmethod
    def repositories_table(entries: Sequence[RepositoryEntry]) -> Table:
        table = Table(
            Column(header="Name", width=24),
            Column(header="Type", width=8),
            Column(header="Location", overflow="ellipsis"),
            Column(header="Branch", width=14),
            Column(header="ID", overflow="ellipsis", style=UIStyle.DIM.value),
            expand=True,
            header_style="bold",
        )
        for entry in entries:
            style = REPOSITORY_TYPE_STYLE.get(entry.type, UIStyle.WHITE.value)
            location = entry.url if entry.is_remote else compact_home_path(entry.path)
            table.add_row(
                entry.name,
                _styled(entry.type.value, style),
                location or "",
                entry.branch or "",
                entry.id,
            )
        return table

    @staticmethod
    def status_table(prepared: Sequence[PreparedRepository]) -> Table:
        table = Table(
            Column(header="Name", width=24),
            Column(header="Status", width=8),
            Column(header="Path", overflow="ellipsis"),
            Column(header="Detail", overflow="fold"),
            expand=True,
            header_style="bold",
        )
        for repository in prepared:
            style = SYNC_STATUS_STYLE.get(repository.status, UIStyle.WHITE.value)
            table.add_row(
                repository.name,
                _styled(repository.status.value, style),
                compact_home_path(repository.local_path),
                repository.sync.message,
            )
        return table


class RuleTable:
    @staticmethod
    def summary_block(tools: Mapping[str, RuleFileTool], skipped: int, failed: int) -> Table:
        counts = Counter(bool(tool.rule_file.apply_to) for tool in tools.values())
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Tools", str(len(tools)))
        table.add_row("Scoped", str(counts.get(True, 0)))
        table.add_row("Skipped files", str(skipped))
        table.add_row("Failed repositories", str(failed))
        return table

    @staticmethod
    def tools_table(tools: Mapping[str, RuleFileTool]) -> Table:
        table = Table(
            Column(header="Tool", width=28),
            Column(header="Description", overflow="fold"),
            Column(header="File", overflow="ellipsis", max_width=48),
            expand=True,
            header_style="bold",
        )
        for name, tool in tools.items():
            table.add_row(
                name,
                tool.tool_description,
                compact_home_path(tool.rule_file.file_path),
            )
        return table
