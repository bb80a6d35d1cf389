from typing import Final


APP_NAME: Final[str] = "rulem"
CONFIG_FILENAME: Final[str] = "config.yaml"
CONFIG_PATH_ENV: Final[str] = "RULEM_CONFIG_PATH"
CONFIG_VERSION: Final[str] = "1.0"
DEBUG_LOG_FILENAME: Final[str] = "rulem.log"
WRITE_PROBE_FILENAME: Final[str] = ".rulem-test"
GITHUB_TOKEN_ENV: Final[str] = "GITHUB_TOKEN"

DIR_MODE: Final[int] = 0o755
FILE_MODE: Final[int] = 0o644
CONFIG_FILE_MODE: Final[int] = 0o600

DEFAULT_MAX_DEPTH: Final[int] = 20
STORAGE_MAX_DEPTH: Final[int] = 50
DEFAULT_MAX_RULE_FILE_SIZE: Final[int] = 5 * 1024 * 1024

MAX_DESCRIPTION_LENGTH: Final[int] = 500
MAX_NAME_LENGTH: Final[int] = 100
MAX_APPLY_TO_LENGTH: Final[int] = 200
MAX_TOOL_NAME_LENGTH: Final[int] = 100
MAX_REPOSITORY_NAME_LENGTH: Final[int] = 100
FALLBACK_TOOL_NAME: Final[str] = "rule_file"
APPLY_TO_LABEL: Final[str] = "apply to"

DEFAULT_GIT_TIMEOUT: Final[float] = 120.0

MARKDOWN_EXTENSIONS: Final[tuple[str, ...]] = (
    ".md",
    ".mdown",
    ".mkdn",
    ".mkd",
    ".markdown",
    ".mdc",
)

DEFAULT_SKIP_PATTERNS: Final[tuple[str, ...]] = (
    "node_modules",
    ".git",
    "vendor",
    "target",
    "build",
    ".next",
    "dist",
    ".cache",
    "__pycache__",
    ".vscode",
    ".idea",
)

SUSPICIOUS_CONTENT_PATTERNS: Final[tuple[str, ...]] = (
    "<script",
    "javascript:",
    "vbscript:",
    "data:text/html",
    "eval(",
    "exec(",
    "onload=",
    "onerror=",
    "onclick=",
)
