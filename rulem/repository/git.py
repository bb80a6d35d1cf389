"""Clone and refresh remote repositories with the ``git`` CLI."""

from __future__ import annotations

import os
import subprocess
from enum import Enum
from typing import Optional, Sequence

from rulem.constants import DEFAULT_GIT_TIMEOUT
from rulem.errors import (
    ExternalError,
    PathValidationError,
    ValidationError,
    ValidationReason,
)
from rulem.fileops.atomic import ensure_directory_exists, is_dir_empty
from rulem.fileops.guard import expand_path, validate_path_security
from rulem.log import Logger, get_logger
from rulem.repository.credentials import auth_environment, resolve_token
from rulem.repository.models import SyncResult, SyncStatus
from rulem.repository.urls import normalize_git_url, parse_git_url
from rulem.tasks import CancelToken, check_cancelled


_AUTH_PATTERNS = (
    "authentication required",
    "authentication failed",
    "could not read username",
    "401",
    "unauthorized",
    "403",
    "forbidden",
)
_NETWORK_PATTERNS = ("network", "connection", "timeout", "timed out", "could not resolve host")


class DirectoryStatus(str, Enum):
    EMPTY = "empty or doesn't exist"
    SAME_REPO = "same git repository"
    DIFFERENT_REPO = "different git repository"
    CONFLICT = "contains non-git content"


class GitCommandError(ExternalError):
    def __init__(self, args: Sequence[str], stderr: str, returncode: Optional[int] = None) -> None:
        self.command = list(args)
        self.stderr = stderr.strip()
        self.returncode = returncode
        detail = self.stderr.splitlines()[-1] if self.stderr else f"exit status {returncode}"
        super().__init__(f"git {self.command[0]} failed: {detail}")

    @property
    def is_auth_error(self) -> bool:
        lowered = self.stderr.lower()
        return any(pattern in lowered for pattern in _AUTH_PATTERNS)


def translate_clone_error(exc: GitCommandError, url: str) -> ExternalError:
    lowered = exc.stderr.lower()
    if exc.is_auth_error:
        if "403" in lowered or "forbidden" in lowered:
            return ExternalError(
                "GitHub token lacks required permissions",
                hint="ensure the token has the 'repo' scope",
            )
        return ExternalError(
            "GitHub authentication failed",
            hint="export a personal access token in GITHUB_TOKEN or the variable named by credential_ref",
        )
    if "404" in lowered or "not found" in lowered:
        return ExternalError(
            f"Repository not found: {url}",
            hint="check the URL or make sure you have access",
        )
    if any(pattern in lowered for pattern in _NETWORK_PATTERNS):
        return ExternalError(
            "Network error during clone",
            hint="check your internet connection and try again",
        )
    return ExternalError(f"Failed to clone repository: {exc.message}")


def translate_fetch_error(exc: GitCommandError) -> str:
    lowered = exc.stderr.lower()
    if exc.is_auth_error:
        return "GitHub token has expired or is invalid, using cached version"
    if any(pattern in lowered for pattern in _NETWORK_PATTERNS):
        return "Network error during fetch, using cached version"
    return f"Failed to fetch repository updates: {exc.message}"


class GitSource:
    """A remote repository cached in a local clone."""

    def __init__(
        self,
        url: str,
        path: str,
        branch: Optional[str] = None,
        credential_ref: Optional[str] = None,
        logger: Optional[Logger] = None,
        cancel_token: Optional[CancelToken] = None,
        timeout: float = DEFAULT_GIT_TIMEOUT,
        git_executable: str = "git",
    ) -> None:
        self.url = url
        self.path = path
        self.branch = branch
        self.credential_ref = credential_ref
        self._logger = logger or get_logger(__name__)
        self._cancel_token = cancel_token
        self._timeout = timeout
        self._git = git_executable

    def _run_git(self, *args: str, cwd: Optional[str] = None, auth: bool = False) -> str:
        check_cancelled(self._cancel_token, f"git {args[0]}")
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        if auth:
            token = resolve_token(self.credential_ref)
            if token:
                env.update(auth_environment(token))
        try:
            result = subprocess.run(
                [self._git, *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                check=True,
                timeout=self._timeout,
                env=env,
            )
        except FileNotFoundError as exc:
            raise ExternalError(
                "git executable not found", hint="install git and make sure it is on PATH"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise GitCommandError(args, f"timed out after {self._timeout:g}s") from exc
        except subprocess.CalledProcessError as exc:
            raise GitCommandError(args, exc.stderr or "", exc.returncode) from exc
        return result.stdout.strip()

    def _run_with_auth_retry(self, *args: str, cwd: Optional[str] = None) -> str:
        try:
            return self._run_git(*args, cwd=cwd)
        except GitCommandError as exc:
            if not exc.is_auth_error or resolve_token(self.credential_ref) is None:
                raise
            self._logger.debug("Public access failed, retrying with token", command=args[0])
        return self._run_git(*args, cwd=cwd, auth=True)

    def _local_path(self) -> str:
        expanded = os.path.normpath(expand_path(self.path.strip()))
        validate_path_security(expanded)
        return os.path.abspath(expanded)

    def prepare(self) -> tuple[str, SyncResult]:
        self._logger.info(
            "Preparing Git repository source",
            remote_url=self.url,
            branch=self.branch,
            local_path=self.path,
        )
        if not self.url.strip():
            raise ValidationError("Remote URL cannot be empty")
        if not self.path.strip():
            raise PathValidationError(ValidationReason.EMPTY_PATH, "Local path cannot be empty")
        parse_git_url(self.url)
        local_path = self._local_path()

        status = self.check_clone_directory(local_path)
        if status in (DirectoryStatus.CONFLICT, DirectoryStatus.DIFFERENT_REPO):
            raise ExternalError(
                f"Directory conflict at {local_path} ({status.value})",
                hint="remove or relocate the existing directory",
            )

        if status == DirectoryStatus.EMPTY:
            self.clone(local_path)
            result = SyncResult(SyncStatus.OK, "Cloned")
        else:
            result = self.sync(local_path)

        self._logger.info(
            "Git repository prepared", local_path=local_path, status=result.status.value
        )
        return local_path, result

    def check_clone_directory(self, local_path: str) -> DirectoryStatus:
        if not os.path.exists(local_path):
            return DirectoryStatus.EMPTY
        if not os.path.isdir(local_path):
            raise PathValidationError(
                ValidationReason.NOT_A_DIRECTORY, "Path exists but is not a directory", local_path
            )
        if is_dir_empty(local_path):
            return DirectoryStatus.EMPTY
        if not os.path.exists(os.path.join(local_path, ".git")):
            return DirectoryStatus.CONFLICT

        current = self.remote_url(local_path)
        if current is None:
            return DirectoryStatus.DIFFERENT_REPO
        if normalize_git_url(current) == normalize_git_url(self.url):
            return DirectoryStatus.SAME_REPO
        self._logger.warning(
            "Clone directory holds a different repository",
            local_path=local_path,
            current=current,
            expected=self.url,
        )
        return DirectoryStatus.DIFFERENT_REPO

    def remote_url(self, local_path: str) -> Optional[str]:
        try:
            url = self._run_git("remote", "get-url", "origin", cwd=local_path)
        except GitCommandError:
            return None
        return url or None

    def clone(self, local_path: str) -> None:
        parent = os.path.dirname(local_path)
        validate_path_security(parent)
        ensure_directory_exists(parent)

        args = ["clone"]
        if self.branch:
            args += ["--branch", self.branch, "--single-branch"]
        args += [self.url.strip(), local_path]

        self._logger.info("Cloning repository", remote_url=self.url, local_path=local_path)
        try:
            self._run_with_auth_retry(*args)
        except GitCommandError as exc:
            raise translate_clone_error(exc, self.url) from exc
        self._logger.info("Repository cloned", local_path=local_path)

    def is_dirty(self, local_path: str) -> bool:
        return bool(self._run_git("status", "--porcelain", cwd=local_path))

    def current_branch(self, local_path: str) -> str:
        return self._run_git("rev-parse", "--abbrev-ref", "HEAD", cwd=local_path)

    def sync(self, local_path: str) -> SyncResult:
        """Fetch and compare HEAD with the remote tip; never touches a dirty tree."""
        try:
            if self.is_dirty(local_path):
                self._logger.warning(
                    "Working tree has uncommitted changes, skipping sync", local_path=local_path
                )
                return SyncResult(SyncStatus.DIRTY, "Uncommitted local changes, sync skipped")
        except GitCommandError as exc:
            return SyncResult(SyncStatus.ERROR, f"Cannot read repository status: {exc.message}")

        self._logger.info("Fetching repository updates", local_path=local_path)
        try:
            self._run_with_auth_retry("fetch", "--prune", "origin", cwd=local_path)
        except GitCommandError as exc:
            message = translate_fetch_error(exc)
            self._logger.warning("Fetch failed", local_path=local_path, error=exc.message)
            return SyncResult(SyncStatus.ERROR, message)

        if self.branch:
            self._checkout_branch(local_path, self.branch)
        return self.compare_with_remote(local_path)

    def _checkout_branch(self, local_path: str, branch: str) -> None:
        try:
            if self.current_branch(local_path) == branch:
                return
            self._run_git("checkout", branch, cwd=local_path)
            self._logger.info("Checked out branch", branch=branch)
        except GitCommandError as exc:
            self._logger.warning(
                "Failed to checkout configured branch", branch=branch, error=exc.message
            )

    def compare_with_remote(self, local_path: str) -> SyncResult:
        try:
            branch = self.branch or self.current_branch(local_path)
            upstream = f"origin/{branch}"
            local_head = self._run_git("rev-parse", "HEAD", cwd=local_path)
            remote_head = self._run_git("rev-parse", upstream, cwd=local_path)
            if local_head == remote_head:
                return SyncResult(SyncStatus.OK, "Up to date")
            behind = int(
                self._run_git("rev-list", "--count", f"HEAD..{upstream}", cwd=local_path) or 0
            )
        except GitCommandError as exc:
            return SyncResult(SyncStatus.ERROR, f"Cannot compare with remote: {exc.message}")

        if behind > 0:
            return SyncResult(SyncStatus.STALE, f"{behind} commit(s) behind {upstream}")
        return SyncResult(SyncStatus.OK, f"Ahead of {upstream}")
