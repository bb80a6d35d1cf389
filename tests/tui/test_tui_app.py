from pathlib import Path

import pytest
from textual.widgets import DataTable, SelectionList

from rulem.config import Config, ConfigStore, config_path
from rulem.repository.models import RepositoryEntry
from rulem.tui.app import (
    MainMenuScreen,
    RulemApp,
    SaveRulesScreen,
    SettingsScreen,
    SetupScreen,
)


def _config(storage: Path) -> Config:
    return Config(init_time=1, repositories=[RepositoryEntry.new_local("Local rules", str(storage))])


@pytest.mark.asyncio(loop_scope="function")
async def test_first_run_shows_setup_and_writes_config(home: Path) -> None:
    app = RulemApp(None, store=ConfigStore())
    async with app.run_test() as pilot:
        assert isinstance(app.screen, SetupScreen)
        app.screen.complete_setup("~/my-rules")
        await pilot.pause()

        assert isinstance(app.screen, MainMenuScreen)
        assert (home / "my-rules").is_dir()
        assert config_path().is_file()
        assert app.config is not None
        assert app.local_storage_dir() == str(home / "my-rules")


@pytest.mark.asyncio(loop_scope="function")
async def test_setup_rejects_reserved_storage() -> None:
    app = RulemApp(None, store=ConfigStore())
    async with app.run_test() as pilot:
        app.screen.complete_setup("/etc/rules")
        await pilot.pause()

        assert isinstance(app.screen, SetupScreen)
        assert app.config is None
        assert not config_path().exists()


@pytest.mark.asyncio(loop_scope="function")
async def test_main_menu_quit(storage: Path) -> None:
    app = RulemApp(_config(storage), store=ConfigStore())
    async with app.run_test() as pilot:
        assert isinstance(app.screen, MainMenuScreen)
        await pilot.press("q")
    assert app.return_value == 0
    assert app.cancel_token.cancelled


@pytest.mark.asyncio(loop_scope="function")
async def test_save_screen_copies_selected_files(storage: Path, workdir: Path, write_rule) -> None:
    write_rule(workdir / "python.md", "Python style")
    (workdir / "notes.txt").write_text("not markdown", encoding="utf-8")

    app = RulemApp(_config(storage), store=ConfigStore())
    async with app.run_test() as pilot:
        screen = SaveRulesScreen()
        await app.push_screen(screen)
        await app.workers.wait_for_complete()
        await pilot.pause()

        assert screen.query_one("#files", SelectionList).option_count == 1

        screen.action_select_all()
        screen.action_save()
        await app.workers.wait_for_complete()
        await pilot.pause()

    assert (storage / "python.md").is_file()


@pytest.mark.asyncio(loop_scope="function")
async def test_settings_delete_repository(storage: Path) -> None:
    store = ConfigStore()
    config = _config(storage)
    store.save(config)

    app = RulemApp(config, store=store)
    async with app.run_test() as pilot:
        screen = SettingsScreen()
        await app.push_screen(screen)
        await pilot.pause()

        assert screen.query_one("#repositories", DataTable).row_count == 1
        screen.action_delete_repository()
        await pilot.pause()

        assert screen.query_one("#repositories", DataTable).row_count == 0

    assert store.load().repositories == []
