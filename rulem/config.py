"""Versioned YAML configuration listing the user's rule repositories.

The document lives at ``$RULEM_CONFIG_PATH`` when that is set, otherwise at
``$XDG_CONFIG_HOME/rulem/config.yaml``. A missing file is not an error in
itself: :func:`load` raises :class:`~rulem.errors.FirstRunRequiredError` and
the caller starts the setup flow.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from rulem.constants import (
    APP_NAME,
    CONFIG_FILE_MODE,
    CONFIG_FILENAME,
    CONFIG_PATH_ENV,
    CONFIG_VERSION,
    DIR_MODE,
)
from rulem.errors import (
    FirstRunRequiredError,
    NotFoundError,
    ParseError,
    PathLike,
    PathValidationError,
    RulemError,
    ValidationError,
    ValidationReason,
    translate_os_error,
)
from rulem.fileops.guard import expand_path, is_reserved_directory, validate_path_in_home
from rulem.log import Logger, get_logger
from rulem.repository.models import RepositoryEntry
from rulem.repository.validation import validate_all_repositories
from rulem.utils import config_home, now_unix


def config_path() -> Path:
    override = os.environ.get(CONFIG_PATH_ENV, "").strip()
    if override:
        return Path(os.path.abspath(expand_path(override)))
    return config_home() / APP_NAME / CONFIG_FILENAME


def find_config_file() -> Optional[Path]:
    path = config_path()
    if path.is_file():
        return path
    return None


def is_first_run() -> bool:
    return find_config_file() is None


def validate_config_location(path: PathLike) -> Path:
    """Reject config locations outside home or inside reserved directories."""
    resolved = Path(os.path.abspath(expand_path(path)))
    validate_path_in_home(resolved)
    if is_reserved_directory(resolved.parent):
        raise PathValidationError(
            ValidationReason.RESERVED,
            "Configuration cannot live in a reserved directory",
            resolved,
        )
    return resolved


@dataclass
class Config:
    version: str = CONFIG_VERSION
    init_time: int = 0
    repositories: list[RepositoryEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Config":
        if not isinstance(data, dict):
            raise ValidationError("Configuration must be a mapping")
        raw_repositories = data.get("repositories") or []
        if not isinstance(raw_repositories, list):
            raise ValidationError("'repositories' must be a list")
        try:
            init_time = int(data.get("init_time") or 0)
        except (TypeError, ValueError) as exc:
            raise ValidationError("'init_time' must be an integer") from exc
        return cls(
            version=str(data.get("version") or CONFIG_VERSION),
            init_time=init_time,
            repositories=[RepositoryEntry.from_dict(item) for item in raw_repositories],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "init_time": self.init_time,
            "repositories": [entry.to_dict() for entry in self.repositories],
        }

    def find_repository_by_id(self, repository_id: str) -> RepositoryEntry:
        for entry in self.repositories:
            if entry.id == repository_id:
                return entry
        raise NotFoundError(None, f"Repository with id '{repository_id}' not found")

    def find_repository_by_name(self, name: str) -> RepositoryEntry:
        wanted = name.strip().casefold()
        for entry in self.repositories:
            if entry.name.casefold() == wanted:
                return entry
        raise NotFoundError(None, f"Repository named '{name}' not found")

    def add_repository(self, entry: RepositoryEntry) -> None:
        validate_all_repositories([*self.repositories, entry])
        self.repositories.append(entry)

    def remove_repository(self, repository_id: str) -> RepositoryEntry:
        entry = self.find_repository_by_id(repository_id)
        self.repositories.remove(entry)
        return entry

    def save(self, logger: Optional[Logger] = None) -> Path:
        return ConfigStore(logger=logger).save(self)

    def save_to(self, path: PathLike, logger: Optional[Logger] = None) -> Path:
        return ConfigStore(path, logger=logger).save(self)


def default_config() -> Config:
    return Config(version=CONFIG_VERSION, init_time=0, repositories=[])


@dataclass(frozen=True)
class ReloadConfigMessage:
    """Posted to asynchronous consumers after the config is re-read."""

    config: Optional[Config] = None
    error: Optional[RulemError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ConfigStore:
    def __init__(self, path: Optional[PathLike] = None, logger: Optional[Logger] = None) -> None:
        self.path = Path(os.path.abspath(expand_path(path))) if path else config_path()
        self._logger = logger or get_logger(__name__)

    def load(self) -> Config:
        if not self.path.exists():
            self._logger.info("Configuration file not found", path=str(self.path))
            raise FirstRunRequiredError(self.path)
        validate_config_location(self.path)

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise translate_os_error(exc, self.path, "read configuration") from exc
        try:
            payload = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ParseError(self.path, f"Invalid YAML ({exc})") from exc

        try:
            config = Config.from_dict(payload or {})
        except ValidationError as exc:
            raise ParseError(self.path, f"Invalid configuration ({exc.message})") from exc

        if not config.repositories:
            self._logger.warning("Configuration has no repositories", path=str(self.path))
        self._logger.debug(
            "Configuration loaded",
            path=str(self.path),
            repository_count=len(config.repositories),
        )
        return config

    def save(self, config: Config) -> Path:
        validate_config_location(self.path)
        if config.init_time == 0:
            config.init_time = now_unix()

        parent = self.path.parent
        try:
            parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        except OSError as exc:
            raise translate_os_error(exc, parent, "create configuration directory") from exc

        document = yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, CONFIG_FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(document)
            os.chmod(self.path, CONFIG_FILE_MODE)
        except OSError as exc:
            raise translate_os_error(exc, self.path, "write configuration") from exc

        self._logger.info(
            "Configuration saved",
            path=str(self.path),
            repository_count=len(config.repositories),
        )
        return self.path

    def reload(self) -> ReloadConfigMessage:
        try:
            return ReloadConfigMessage(config=self.load())
        except RulemError as exc:
            self._logger.warning("Configuration reload failed", error=exc.message)
            return ReloadConfigMessage(error=exc)


def load() -> Config:
    return ConfigStore().load()


def load_from(path: PathLike) -> Config:
    return ConfigStore(path).load()


def reload() -> ReloadConfigMessage:
    return ConfigStore().reload()
