from typing import Mapping, Optional, Sequence

from rich.console import Console

from rulem.repository.models import PreparedRepository, RepositoryEntry, RepositoryFailure
from rulem.rules.models import RuleFileTool, SkippedFile
from rulem.tui.enums import UIStyle
from rulem.tui.sections import UISection
from rulem.tui.tables import RepositoryTable, RuleTable
from rulem.utils import compact_home_path


class RulemConsoleUI:
    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def render_repositories(self, entries: Sequence[RepositoryEntry]) -> None:
        if not entries:
            self.console.print(
                UISection.note(
                    "repositories",
                    "No repositories configured.\n"
                    "- rulem repos add-local <name> <path>\n"
                    "- rulem repos add-github <name> <url>",
                    style=UIStyle.YELLOW.value,
                )
            )
            return
        self.console.print(
            UISection.wrap(
                "repositories",
                RepositoryTable.repositories_table(entries),
                style=UIStyle.BLUE.value,
            )
        )

    def render_repository_status(self, prepared: Sequence[PreparedRepository]) -> None:
        if not prepared:
            return
        self.console.print(
            UISection.wrap(
                "repository status",
                RepositoryTable.status_table(prepared),
                style=UIStyle.CYAN.value,
            )
        )

    def render_repository_saved(self, entry: RepositoryEntry, removed: bool = False) -> None:
        verb = "removed" if removed else "added"
        location = entry.url if entry.is_remote else compact_home_path(entry.path)
        self.console.print(
            UISection.note(
                "repository",
                f"Repository {verb}: [bold]{entry.name}[/bold] ({entry.type.value})\n{location}",
                style=UIStyle.YELLOW.value if removed else UIStyle.GREEN.value,
            )
        )

    def render_failures(self, failures: Sequence[RepositoryFailure]) -> None:
        if failures:
            self.console.print(
                UISection.bullets(
                    "unavailable repositories",
                    [failure.describe() for failure in failures],
                    style=UIStyle.RED.value,
                )
            )

    def render_rules(
        self,
        tools: Mapping[str, RuleFileTool],
        skipped: Sequence[SkippedFile] = (),
        failures: Sequence[RepositoryFailure] = (),
        verbose: bool = False,
    ) -> None:
        self.console.print(
            UISection.wrap(
                "rules overview",
                RuleTable.summary_block(tools, skipped=len(skipped), failed=len(failures)),
                style=UIStyle.BLUE.value,
            )
        )
        if tools:
            self.console.print(
                UISection.wrap("rule tools", RuleTable.tools_table(tools), style=UIStyle.CYAN.value)
            )
        else:
            self.console.print(
                UISection.note("rule tools", "No rule files found.", style=UIStyle.DIM.value)
            )
        if verbose and skipped:
            self.console.print(
                UISection.bullets(
                    "skipped",
                    [f"{item.path}: {item.reason}" for item in skipped],
                    style=UIStyle.YELLOW.value,
                )
            )
        self.render_failures(failures)

    def render_file_saved(self, source: str, destination: str) -> None:
        self.console.print(
            UISection.note(
                "saved",
                f"{compact_home_path(source)}\n-> {compact_home_path(destination)}",
                style=UIStyle.GREEN.value,
            )
        )

    def render_migrated(self, storage_path: str, destination: str, symlink: bool) -> None:
        verb = "Linked" if symlink else "Copied"
        self.console.print(
            UISection.note(
                "migrate",
                f"{verb} {compact_home_path(storage_path)}\n-> {destination}",
                style=UIStyle.GREEN.value,
            )
        )

    def render_error(self, message: str) -> None:
        self.console.print(UISection.note("error", message, style=UIStyle.RED.value))
