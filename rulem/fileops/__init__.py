from rulem.fileops.atomic import (
    atomic_copy,
    ensure_directory_exists,
    is_dir_empty,
    validate_directory_writable,
)
from rulem.fileops.guard import (
    expand_path,
    is_reserved_directory,
    is_within,
    sanitize_filename,
    sanitize_identifier,
    validate_content_security,
    validate_cwd_path,
    validate_file_access,
    validate_file_in_directory,
    validate_file_size_limit,
    validate_path_in_home,
    validate_path_security,
    validate_storage_path,
)
from rulem.fileops.sandbox import SandboxRoot
from rulem.fileops.scanner import (
    DirectoryScanOptions,
    ScannedFile,
    ScanStats,
    SecureDirectoryScanner,
    scan_with_filter,
)
from rulem.fileops.symlinks import (
    create_absolute_symlink,
    create_relative_symlink,
    is_symlink,
    read_symlink_target,
    remove_symlink,
    resolve_symlink,
    validate_symlink_security,
)

__all__ = [
    "DirectoryScanOptions",
    "SandboxRoot",
    "ScanStats",
    "ScannedFile",
    "SecureDirectoryScanner",
    "atomic_copy",
    "create_absolute_symlink",
    "create_relative_symlink",
    "ensure_directory_exists",
    "expand_path",
    "is_dir_empty",
    "is_reserved_directory",
    "is_symlink",
    "is_within",
    "read_symlink_target",
    "remove_symlink",
    "resolve_symlink",
    "sanitize_filename",
    "sanitize_identifier",
    "scan_with_filter",
    "validate_content_security",
    "validate_cwd_path",
    "validate_directory_writable",
    "validate_file_access",
    "validate_file_in_directory",
    "validate_file_size_limit",
    "validate_path_in_home",
    "validate_path_security",
    "validate_storage_path",
    "validate_symlink_security",
]
