import functools
from importlib.metadata import PackageNotFoundError, version as package_version
from typing import Any, Callable, Dict, Optional

import click
from rich.console import Console

from rulem import mcp_server
from rulem.assistants import AssistantId, assistant_target, migrate_rule
from rulem.config import Config, ConfigStore, default_config
from rulem.constants import APP_NAME
from rulem.editor import edit_file
from rulem.errors import FirstRunRequiredError, NotFoundError, RulemError
from rulem.filemanager.manager import FileManager
from rulem.filemanager.storage import ensure_local_storage_directory
from rulem.log import configure_logging, debug_requested, get_logger
from rulem.repository.models import RepositoryEntry
from rulem.repository.preparation import prepare_all_repositories
from rulem.rules.discovery import discover_rule_tools
from rulem.tui import RulemConsoleUI, run_tui


ASSISTANT_VALUES = [assistant.value for assistant in AssistantId]


def _user_errors(command: Callable) -> Callable:
    @functools.wraps(command)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return command(*args, **kwargs)
        except RulemError as exc:
            raise click.ClickException(exc.user_message()) from exc

    return wrapper


def _store(obj: Dict[str, Any]) -> ConfigStore:
    return ConfigStore(logger=obj.get("logger"))


def _load_config(store: ConfigStore) -> Config:
    try:
        return store.load()
    except FirstRunRequiredError as exc:
        raise click.ClickException(
            f"{exc.message}. Run `{APP_NAME}` to start setup or add a repository."
        ) from exc


def _load_or_default(store: ConfigStore) -> Config:
    try:
        return store.load()
    except FirstRunRequiredError:
        return default_config()


def _select_repository(config: Config, name: Optional[str]) -> RepositoryEntry:
    if name:
        try:
            return config.find_repository_by_id(name)
        except NotFoundError:
            return config.find_repository_by_name(name)
    for entry in config.repositories:
        if entry.is_local:
            return entry
    raise click.ClickException("No local repository configured; pass --repository")


def _repository_option() -> Callable:
    return click.option(
        "--repository",
        "-r",
        "repository",
        default=None,
        help="Repository name or id (defaults to the first local repository).",
    )


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--debug", is_flag=True, help="Write debug logs to ./rulem.log.")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Manage AI-assistant rule files across repositories."""
    configure_logging(debug=debug or debug_requested())
    ctx.obj = {"logger": get_logger(APP_NAME)}
    if ctx.invoked_subcommand is not None:
        return

    store = _store(ctx.obj)
    try:
        config: Optional[Config] = store.load()
    except FirstRunRequiredError:
        config = None
    except RulemError as exc:
        raise click.ClickException(exc.user_message()) from exc

    code = run_tui(config, store=store, logger=ctx.obj["logger"])
    if code:
        raise click.exceptions.Exit(code)


@cli.command(help="Show the installed version.")
def version() -> None:
    try:
        installed = package_version(APP_NAME)
    except PackageNotFoundError:
        installed = "unknown"
    click.echo(f"{APP_NAME} {installed}")


@cli.command(help="Serve rule files as MCP tools over stdio.")
@click.pass_obj
@_user_errors
def mcp(obj: Dict[str, Any]) -> None:
    mcp_server.run(logger=obj["logger"])


@cli.group(help="Manage configured rule repositories.")
def repos() -> None:
    pass


@repos.command("list", help="List configured repositories.")
@click.option("--status", is_flag=True, help="Prepare repositories and show sync status.")
@click.pass_obj
@_user_errors
def repos_list(obj: Dict[str, Any], status: bool) -> None:
    ui = RulemConsoleUI(Console())
    config = _load_config(_store(obj))
    ui.render_repositories(config.repositories)
    if status:
        result = prepare_all_repositories(config.repositories, logger=obj["logger"])
        ui.render_repository_status(result.prepared)
        ui.render_failures(result.failures)


@repos.command("add-local", help="Add a local directory of rule files.")
@click.argument("name")
@click.argument("path")
@click.pass_obj
@_user_errors
def repos_add_local(obj: Dict[str, Any], name: str, path: str) -> None:
    ui = RulemConsoleUI(Console())
    store = _store(obj)
    config = _load_or_default(store)
    storage = ensure_local_storage_directory(path, obj["logger"])
    entry = RepositoryEntry.new_local(name, storage)
    config.add_repository(entry)
    store.save(config)
    ui.render_repository_saved(entry)


@repos.command("add-github", help="Add a GitHub repository of rule files.")
@click.argument("name")
@click.argument("url")
@click.option("--branch", default=None, help="Branch to track (default branch if omitted).")
@click.option("--path", "clone_path", default=None, help="Where to keep the local clone.")
@click.option(
    "--credential-ref",
    default=None,
    help="Environment variable holding the access token (GITHUB_TOKEN if omitted).",
)
@click.pass_obj
@_user_errors
def repos_add_github(
    obj: Dict[str, Any],
    name: str,
    url: str,
    branch: Optional[str],
    clone_path: Optional[str],
    credential_ref: Optional[str],
) -> None:
    ui = RulemConsoleUI(Console())
    store = _store(obj)
    config = _load_or_default(store)
    entry = RepositoryEntry.new_github(
        name, url, branch=branch, path=clone_path, credential_ref=credential_ref
    )
    config.add_repository(entry)
    store.save(config)
    ui.render_repository_saved(entry)


@repos.command("remove", help="Remove a repository from config by name or id.")
@click.argument("name")
@click.pass_obj
@_user_errors
def repos_remove(obj: Dict[str, Any], name: str) -> None:
    ui = RulemConsoleUI(Console())
    store = _store(obj)
    config = _load_config(store)
    entry = _select_repository(config, name)
    config.remove_repository(entry.id)
    store.save(config)
    ui.render_repository_saved(entry, removed=True)


@cli.group(help="Inspect rule files.")
def rules() -> None:
    pass


@rules.command("list", help="List rule files exposed as MCP tools.")
@click.option("--verbose", "-v", is_flag=True, help="Show skipped files and reasons.")
@click.pass_obj
@_user_errors
def rules_list(obj: Dict[str, Any], verbose: bool) -> None:
    ui = RulemConsoleUI(Console())
    config = _load_config(_store(obj))
    preparation = prepare_all_repositories(config.repositories, logger=obj["logger"])
    discovery = discover_rule_tools(preparation.prepared, logger=obj["logger"])
    ui.render_rules(
        discovery.tools,
        skipped=discovery.skipped,
        failures=preparation.failures + discovery.failures,
        verbose=verbose,
    )


@cli.command(help="Copy a rule file into repository storage.")
@click.argument("file")
@click.option("--name", "new_name", default=None, help="Store under a different file name.")
@click.option("--overwrite", is_flag=True, help="Replace an existing stored file.")
@_repository_option()
@click.pass_obj
@_user_errors
def save(
    obj: Dict[str, Any],
    file: str,
    new_name: Optional[str],
    overwrite: bool,
    repository: Optional[str],
) -> None:
    ui = RulemConsoleUI(Console())
    entry = _select_repository(_load_config(_store(obj)), repository)
    with FileManager(entry.path, logger=obj["logger"]) as manager:
        destination = manager.copy_file_to_storage(file, new_name=new_name, overwrite=overwrite)
    ui.render_file_saved(file, destination)


@cli.command(help="Copy or link a stored rule file into the current directory.")
@click.argument("storage_file")
@click.option(
    "--assistant",
    "-a",
    type=click.Choice(ASSISTANT_VALUES, case_sensitive=False),
    default=AssistantId.DEFAULT.value,
    show_default=True,
    help="Assistant layout that decides the destination name.",
)
@click.option("--symlink", is_flag=True, help="Create a relative symlink instead of a copy.")
@click.option("--overwrite", is_flag=True, help="Replace an existing destination.")
@_repository_option()
@click.pass_obj
@_user_errors
def migrate(
    obj: Dict[str, Any],
    storage_file: str,
    assistant: str,
    symlink: bool,
    overwrite: bool,
    repository: Optional[str],
) -> None:
    ui = RulemConsoleUI(Console())
    entry = _select_repository(_load_config(_store(obj)), repository)
    target = assistant_target(assistant.lower())
    with FileManager(entry.path, logger=obj["logger"]) as manager:
        destination = migrate_rule(manager, storage_file, target, symlink=symlink, overwrite=overwrite)
    ui.render_migrated(storage_file, destination, symlink)


@cli.command(help="Open a stored rule file in $EDITOR.")
@click.argument("storage_file")
@_repository_option()
@click.pass_obj
@_user_errors
def edit(obj: Dict[str, Any], storage_file: str, repository: Optional[str]) -> None:
    entry = _select_repository(_load_config(_store(obj)), repository)
    with FileManager(entry.path, logger=obj["logger"]) as manager:
        path = manager.resolve_storage_file(storage_file)
    edit_file(path, logger=obj["logger"])


def main() -> int:
    try:
        cli(standalone_mode=False)
    except click.exceptions.Exit as exc:
        code = exc.exit_code
        return code if isinstance(code, int) else 1
    except click.exceptions.Abort:
        return 1
    except click.ClickException as exc:
        exc.show()
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
