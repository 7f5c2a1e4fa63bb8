"""Core utilities for hugopub."""

from hugopub.core.backup import (
    DEFAULT_KEEP_COUNT,
    DEFAULT_KEEP_DAYS,
    PostBackup,
    backup_post,
    list_backups,
    prune_backups,
    safe_write_text,
)
from hugopub.core.config import get_paths, get_setting, get_site_root
from hugopub.core.errors import (
    DuplicateTitle,
    InvalidArgument,
    MalformedDocument,
    NotFound,
    PostError,
    StorageError,
)

__all__ = [
    # Backup
    "backup_post",
    "safe_write_text",
    "prune_backups",
    "list_backups",
    "PostBackup",
    "DEFAULT_KEEP_COUNT",
    "DEFAULT_KEEP_DAYS",
    # Config
    "get_site_root",
    "get_paths",
    "get_setting",
    # Errors
    "PostError",
    "NotFound",
    "DuplicateTitle",
    "MalformedDocument",
    "StorageError",
    "InvalidArgument",
]
