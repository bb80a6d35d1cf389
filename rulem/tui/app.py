"""Interactive Textual front end.

Slow work (scanning, cloning, fetching, copying) runs in thread workers that
post a message back to their screen when done, so the UI never blocks.
"""

from __future__ import annotations

from typing import Optional, cast

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.screen import ModalScreen, Screen
from textual.widgets import (
    Button,
    Checkbox,
    DataTable,
    Footer,
    Header,
    Input,
    OptionList,
    Select,
    SelectionList,
    Static,
)
from textual.widgets.option_list import Option
from textual.widgets.selection_list import Selection

from rulem.assistants import ASSISTANT_TARGETS, AssistantId, assistant_target, migrate_rule
from rulem.config import Config, ConfigStore, default_config
from rulem.errors import RulemError
from rulem.filemanager.manager import FileManager
from rulem.filemanager.models import FileItem
from rulem.filemanager.scan import scan_all_repositories
from rulem.filemanager.storage import ensure_local_storage_directory, get_default_storage_dir
from rulem.log import Logger, get_logger
from rulem.repository.models import (
    PreparedRepository,
    RepositoryEntry,
    RepositoryFailure,
    RepositoryType,
)
from rulem.repository.preparation import prepare_all_repositories, sync_all_repositories
from rulem.tasks import CancelToken
from rulem.utils import compact_home_path

DEFAULT_LOCAL_REPOSITORY_NAME = "Local rules"


class FilesScanned(Message):
    def __init__(self, files: list[FileItem], error: Optional[str] = None) -> None:
        super().__init__()
        self.files = files
        self.error = error


class RulesScanned(Message):
    def __init__(
        self,
        files: list[FileItem],
        prepared: list[PreparedRepository],
        failures: list[RepositoryFailure],
    ) -> None:
        super().__init__()
        self.files = files
        self.prepared = prepared
        self.failures = failures


class FilesTransferred(Message):
    def __init__(self, done: list[str], errors: list[str]) -> None:
        super().__init__()
        self.done = done
        self.errors = errors


class RepositoriesPrepared(Message):
    def __init__(
        self, prepared: list[PreparedRepository], failures: list[RepositoryFailure]
    ) -> None:
        super().__init__()
        self.prepared = prepared
        self.failures = failures


def _rulem_app(screen: Screen) -> "RulemApp":
    return cast("RulemApp", screen.app)


class SetupScreen(Screen):
    """First-run flow: pick the local storage directory and write the config."""

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="setup"):
            yield Static("Welcome to rulem. Choose where your rule files are stored.", id="info")
            yield Input(value=compact_home_path(get_default_storage_dir()), id="storage")
            yield Button("Continue", id="continue", variant="primary")
            yield Static("", id="error")
        yield Footer()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.complete_setup(event.value)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "continue":
            self.complete_setup(self.query_one("#storage", Input).value)

    def complete_setup(self, value: str) -> None:
        app = _rulem_app(self)
        try:
            storage = ensure_local_storage_directory(value.strip(), app.logger)
            config = default_config()
            config.add_repository(RepositoryEntry.new_local(DEFAULT_LOCAL_REPOSITORY_NAME, storage))
            app.store.save(config)
        except RulemError as exc:
            self.query_one("#error", Static).update(f"[red]{exc.user_message()}[/red]")
            return
        app.config = config
        app.switch_screen(MainMenuScreen())


class MainMenuScreen(Screen):
    BINDINGS = [Binding("q", "app.quit_app", "Quit")]

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(self._storage_line(), id="info")
        yield OptionList(
            Option("Save rules from current directory", id="save"),
            Option("Import rules into current directory", id="import"),
            Option("Settings", id="settings"),
            Option("Quit", id="quit"),
            id="menu",
        )
        yield Footer()

    def _storage_line(self) -> str:
        app = _rulem_app(self)
        storage = app.local_storage_dir()
        if storage is None:
            return "No local repository configured"
        return f"Storage: {compact_home_path(storage)}"

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        choice = event.option.id
        if choice == "save":
            self.app.push_screen(SaveRulesScreen())
        elif choice == "import":
            self.app.push_screen(ImportRulesScreen())
        elif choice == "settings":
            self.app.push_screen(SettingsScreen())
        elif choice == "quit":
            self.app.action_quit_app()


class SaveRulesScreen(Screen):
    """Copy Markdown files from the working directory into local storage."""

    BINDINGS = [
        Binding("escape", "app.pop_screen", "Back"),
        Binding("a", "select_all", "Select All"),
        Binding("n", "select_none", "Select None"),
        Binding("s", "save", "Save"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._files: list[FileItem] = []

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("Scanning current directory...", id="info")
        yield Checkbox("Overwrite existing files", id="overwrite")
        yield SelectionList[int](id="files")
        yield Footer()

    def on_mount(self) -> None:
        self.scan_cwd()

    @work(thread=True, exclusive=True)
    def scan_cwd(self) -> None:
        app = _rulem_app(self)
        storage = app.local_storage_dir()
        if storage is None:
            self.post_message(FilesScanned([], "Add a local repository in settings first"))
            return
        try:
            with FileManager(storage, logger=app.logger, cancel_token=app.cancel_token) as manager:
                files = manager.scan_cwd()
        except RulemError as exc:
            self.post_message(FilesScanned([], exc.user_message()))
            return
        self.post_message(FilesScanned(files))

    def on_files_scanned(self, message: FilesScanned) -> None:
        info = self.query_one("#info", Static)
        if message.error:
            info.update(f"[red]{message.error}[/red]")
            return
        self._files = message.files
        selection = self.query_one("#files", SelectionList)
        selection.clear_options()
        selection.add_options(
            [Selection(item.path, index, False) for index, item in enumerate(self._files)]
        )
        info.update(f"{len(self._files)} Markdown file(s) found, press s to save the selection")

    def action_select_all(self) -> None:
        self.query_one("#files", SelectionList).select_all()

    def action_select_none(self) -> None:
        self.query_one("#files", SelectionList).deselect_all()

    def action_save(self) -> None:
        indices = list(self.query_one("#files", SelectionList).selected)
        overwrite = self.query_one("#overwrite", Checkbox).value
        if indices:
            self.save_files([self._files[index] for index in indices], overwrite)

    @work(thread=True, exclusive=True)
    def save_files(self, items: list[FileItem], overwrite: bool) -> None:
        app = _rulem_app(self)
        storage = app.local_storage_dir()
        if storage is None:
            return
        done: list[str] = []
        errors: list[str] = []
        try:
            manager = FileManager(storage, logger=app.logger, cancel_token=app.cancel_token)
        except RulemError as exc:
            self.post_message(FilesTransferred([], [exc.user_message()]))
            return
        with manager:
            for item in items:
                try:
                    done.append(manager.copy_file_to_storage(item.path, overwrite=overwrite))
                except RulemError as exc:
                    errors.append(f"{item.name}: {exc.user_message()}")
        self.post_message(FilesTransferred(done, errors))

    def on_files_transferred(self, message: FilesTransferred) -> None:
        _notify_transfer(self, message, "saved")


class ImportRulesScreen(Screen):
    """Copy or link rule files from any repository into the working directory."""

    BINDINGS = [
        Binding("escape", "app.pop_screen", "Back"),
        Binding("i", "import_selected", "Import"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._files: list[FileItem] = []
        self._prepared: dict[str, PreparedRepository] = {}

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("Preparing repositories...", id="info")
        with Horizontal(id="options"):
            yield Select(
                [(target.label, key.value) for key, target in ASSISTANT_TARGETS.items()],
                value=AssistantId.DEFAULT.value,
                allow_blank=False,
                id="assistant",
            )
            yield Checkbox("Symlink", id="symlink")
            yield Checkbox("Overwrite", id="overwrite")
        yield SelectionList[int](id="rules")
        yield Footer()

    def on_mount(self) -> None:
        self.load_rules()

    @work(thread=True, exclusive=True)
    def load_rules(self) -> None:
        app = _rulem_app(self)
        repositories = app.config.repositories if app.config else []
        try:
            preparation = prepare_all_repositories(
                repositories, logger=app.logger, cancel_token=app.cancel_token
            )
        except RulemError as exc:
            failure = RepositoryFailure("", "configuration", exc.user_message())
            self.post_message(RulesScanned([], [], [failure]))
            return
        scan = scan_all_repositories(
            preparation.prepared, logger=app.logger, cancel_token=app.cancel_token
        )
        self.post_message(
            RulesScanned(scan.files, preparation.prepared, preparation.failures + scan.failures)
        )

    def on_rules_scanned(self, message: RulesScanned) -> None:
        self._files = message.files
        self._prepared = {repository.id: repository for repository in message.prepared}
        selection = self.query_one("#rules", SelectionList)
        selection.clear_options()
        selection.add_options(
            [
                Selection(f"[{item.repository_name}] {item.name}", index, False)
                for index, item in enumerate(self._files)
            ]
        )
        text = f"{len(self._files)} rule file(s), press i to import the selection"
        if message.failures:
            text += "\n[red]" + "\n".join(f.describe() for f in message.failures) + "[/red]"
        self.query_one("#info", Static).update(text)

    def action_import_selected(self) -> None:
        indices = list(self.query_one("#rules", SelectionList).selected)
        if not indices:
            return
        assistant = str(self.query_one("#assistant", Select).value)
        symlink = self.query_one("#symlink", Checkbox).value
        overwrite = self.query_one("#overwrite", Checkbox).value
        self.import_files([self._files[index] for index in indices], assistant, symlink, overwrite)

    @work(thread=True, exclusive=True)
    def import_files(
        self, items: list[FileItem], assistant: str, symlink: bool, overwrite: bool
    ) -> None:
        app = _rulem_app(self)
        target = assistant_target(assistant)
        done: list[str] = []
        errors: list[str] = []
        for item in items:
            repository = self._prepared.get(item.repository_id or "")
            if repository is None:
                errors.append(f"{item.name}: repository is no longer available")
                continue
            try:
                with FileManager(repository.local_path, logger=app.logger) as manager:
                    done.append(migrate_rule(manager, item.path, target, symlink, overwrite))
            except RulemError as exc:
                errors.append(f"{item.name}: {exc.user_message()}")
        self.post_message(FilesTransferred(done, errors))

    def on_files_transferred(self, message: FilesTransferred) -> None:
        _notify_transfer(self, message, "imported")


class AddRepositoryScreen(ModalScreen[Optional[RepositoryEntry]]):
    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def compose(self) -> ComposeResult:
        with Vertical(id="add-repository"):
            yield Select(
                [("Local directory", RepositoryType.LOCAL.value), ("GitHub", RepositoryType.GITHUB.value)],
                value=RepositoryType.LOCAL.value,
                allow_blank=False,
                id="type",
            )
            yield Input(placeholder="Name", id="name")
            yield Input(placeholder="Path (local) or clone directory (GitHub, optional)", id="path")
            yield Input(placeholder="Remote URL (GitHub only)", id="url")
            yield Input(placeholder="Branch (optional)", id="branch")
            yield Button("Add", id="add", variant="primary")
            yield Static("", id="error")

    def _value(self, widget_id: str) -> str:
        return self.query_one(f"#{widget_id}", Input).value.strip()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id != "add":
            return
        app = _rulem_app(self)
        try:
            if self.query_one("#type", Select).value == RepositoryType.GITHUB.value:
                entry = RepositoryEntry.new_github(
                    self._value("name"),
                    self._value("url"),
                    branch=self._value("branch") or None,
                    path=self._value("path") or None,
                )
            else:
                path = ensure_local_storage_directory(self._value("path"), app.logger)
                entry = RepositoryEntry.new_local(self._value("name"), path)
        except RulemError as exc:
            self.query_one("#error", Static).update(f"[red]{exc.user_message()}[/red]")
            return
        self.dismiss(entry)

    def action_cancel(self) -> None:
        self.dismiss(None)


class SettingsScreen(Screen):
    BINDINGS = [
        Binding("escape", "app.pop_screen", "Back"),
        Binding("a", "add_repository", "Add"),
        Binding("d", "delete_repository", "Delete"),
        Binding("r", "refresh", "Refresh"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._prepared: list[PreparedRepository] = []

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("", id="info")
        yield DataTable(id="repositories", cursor_type="row")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#repositories", DataTable)
        table.add_columns("Name", "Type", "Location", "Status")
        self._fill_table()

    def _repositories(self) -> list[RepositoryEntry]:
        app = _rulem_app(self)
        return list(app.config.repositories) if app.config else []

    def _fill_table(self) -> None:
        status = {repository.id: repository.sync for repository in self._prepared}
        table = self.query_one("#repositories", DataTable)
        table.clear()
        for entry in self._repositories():
            sync = status.get(entry.id)
            table.add_row(
                entry.name,
                entry.type.value,
                entry.url if entry.is_remote else compact_home_path(entry.path),
                f"{sync.status.value}: {sync.message}" if sync else "",
                key=entry.id,
            )

    def action_refresh(self) -> None:
        self.query_one("#info", Static).update("Refreshing repositories...")
        self.refresh_repositories()

    @work(thread=True, exclusive=True)
    def refresh_repositories(self) -> None:
        app = _rulem_app(self)
        if self._prepared:
            prepared = sync_all_repositories(
                self._prepared, logger=app.logger, cancel_token=app.cancel_token
            )
            self.post_message(RepositoriesPrepared(prepared, []))
            return
        try:
            result = prepare_all_repositories(
                self._repositories(), logger=app.logger, cancel_token=app.cancel_token
            )
        except RulemError as exc:
            self.post_message(
                RepositoriesPrepared([], [RepositoryFailure("", "configuration", exc.user_message())])
            )
            return
        self.post_message(RepositoriesPrepared(result.prepared, result.failures))

    def on_repositories_prepared(self, message: RepositoriesPrepared) -> None:
        self._prepared = message.prepared
        self._fill_table()
        text = f"{len(message.prepared)} repositories ready"
        if message.failures:
            text += "\n[red]" + "\n".join(f.describe() for f in message.failures) + "[/red]"
        self.query_one("#info", Static).update(text)

    def action_add_repository(self) -> None:
        self.app.push_screen(AddRepositoryScreen(), self._repository_added)

    def _repository_added(self, entry: Optional[RepositoryEntry]) -> None:
        if entry is None:
            return
        app = _rulem_app(self)
        config = app.config or default_config()
        try:
            config.add_repository(entry)
            app.store.save(config)
        except RulemError as exc:
            self.notify(exc.user_message(), severity="error")
            return
        app.config = config
        self._fill_table()

    def action_delete_repository(self) -> None:
        app = _rulem_app(self)
        table = self.query_one("#repositories", DataTable)
        if app.config is None or table.row_count == 0:
            return
        entry = self._repositories()[table.cursor_row]
        try:
            app.config.remove_repository(entry.id)
            app.store.save(app.config)
        except RulemError as exc:
            self.notify(exc.user_message(), severity="error")
            return
        self._prepared = [item for item in self._prepared if item.id != entry.id]
        self._fill_table()
        self.notify(f"Removed {entry.name}")


def _notify_transfer(screen: Screen, message: FilesTransferred, verb: str) -> None:
    if message.done:
        screen.notify(f"{len(message.done)} file(s) {verb}")
    for error in message.errors:
        screen.notify(error, severity="error")


class RulemApp(App[int]):
    TITLE = "rulem"
    CSS = """
    #info {
        height: auto;
        background: $primary-darken-2;
        color: $text;
        padding: 0 1;
    }
    #options {
        height: auto;
    }
    SelectionList, DataTable, OptionList {
        height: 1fr;
    }
    #add-repository {
        width: 80;
        height: auto;
        border: thick $primary;
        background: $surface;
        padding: 1 2;
    }
    AddRepositoryScreen {
        align: center middle;
    }
    """

    BINDINGS = [Binding("ctrl+q", "quit_app", "Quit")]

    def __init__(
        self,
        config: Optional[Config] = None,
        store: Optional[ConfigStore] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__()
        self.config = config
        self.logger = logger or get_logger(__name__)
        self.store = store or ConfigStore(logger=self.logger)
        self.cancel_token = CancelToken()

    def on_mount(self) -> None:
        if self.config is None:
            self.push_screen(SetupScreen())
        else:
            self.push_screen(MainMenuScreen())

    def local_storage_dir(self) -> Optional[str]:
        if self.config is None:
            return None
        for entry in self.config.repositories:
            if entry.is_local:
                return entry.path
        return None

    def action_quit_app(self) -> None:
        self.cancel_token.cancel()
        self.exit(0)


def run_tui(
    config: Optional[Config],
    store: Optional[ConfigStore] = None,
    logger: Optional[Logger] = None,
) -> int:
    result = RulemApp(config, store=store, logger=logger).run()
    return result if isinstance(result, int) else 0
