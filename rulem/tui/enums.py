from enum import Enum

from rulem.repository.models import RepositoryType, SyncStatus


class UIStyle(str, Enum):
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    CYAN = "cyan"
    MAGENTA = "magenta"
    DIM = "dim"
    WHITE = "white"


SYNC_STATUS_STYLE = {
    SyncStatus.OK: UIStyle.GREEN.value,
    SyncStatus.STALE: UIStyle.YELLOW.value,
    SyncStatus.DIRTY: UIStyle.MAGENTA.value,
    SyncStatus.ERROR: UIStyle.RED.value,
}

REPOSITORY_TYPE_STYLE = {
    RepositoryType.LOCAL: UIStyle.CYAN.value,
    RepositoryType.GITHUB: UIStyle.BLUE.value,
}
