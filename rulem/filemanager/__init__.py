from rulem.filemanager.manager import FileManager
from rulem.filemanager.models import FileItem, MultiRepositoryScan, is_markdown_file
from rulem.filemanager.scan import scan_all_repositories, scan_repository
from rulem.filemanager.storage import ensure_local_storage_directory, get_default_storage_dir

__all__ = [
    "FileItem",
    "FileManager",
    "MultiRepositoryScan",
    "ensure_local_storage_directory",
    "get_default_storage_dir",
    "is_markdown_file",
    "scan_all_repositories",
    "scan_repository",
]
