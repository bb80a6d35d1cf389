import sys
from pathlib import Path
from typing import Any, Callable

from click.testing import CliRunner
import pytest
import structlog


def _ensure_repo_on_path() -> None:
    repo_root = Path(__file__).resolve().parent.parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_ensure_repo_on_path()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path_factory: pytest.TempPathFactory, monkeypatch) -> Path:
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(home / ".local" / "share"))
    monkeypatch.setenv("RULEM_CONFIG_PATH", str(home / ".config" / "rulem" / "config.yaml"))
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("DEBUG", raising=False)
    monkeypatch.setattr(Path, "home", lambda: home)
    return home


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()


@pytest.fixture
def home(isolated_home: Path) -> Path:
    return isolated_home


@pytest.fixture
def workdir(home: Path, monkeypatch) -> Path:
    path = home / "project"
    path.mkdir()
    monkeypatch.chdir(path)
    return path


@pytest.fixture
def storage(home: Path) -> Path:
    path = home / "rules"
    path.mkdir()
    return path


@pytest.fixture
def write_rule() -> Callable[..., Path]:
    def _write(
        path: Path,
        description: str = "Test rule",
        body: str = "# Rule\n\nDo the thing.\n",
        **fields: str,
    ) -> Path:
        lines = ["---", f"description: {description}"]
        lines.extend(f"{key}: {value}" for key, value in fields.items())
        lines.append("---")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines) + "\n" + body, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def cli_runner(home: Path) -> CliRunner:
    class HomeCliRunner(CliRunner):
        def invoke(self, cli: Any, args: Any = None, **kwargs: Any):  # type: ignore[override]
            env = dict(kwargs.pop("env", {}) or {})
            env.setdefault("HOME", str(home))
            env.setdefault("XDG_CONFIG_HOME", str(home / ".config"))
            env.setdefault("RULEM_CONFIG_PATH", str(home / ".config" / "rulem" / "config.yaml"))
            kwargs["env"] = env
            return super().invoke(cli, args=args, **kwargs)

    return HomeCliRunner()
