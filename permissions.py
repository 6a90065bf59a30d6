"""
FileKeep Server - Permission Engine

Pure predicate functions deciding what a request may do:
- Capability checks against the user's permission set
- Per-extension read/write/open/delete rules with a default fallback
- Protected folders (no rename/delete) and read-only folders (no upload/mkdir)
- Banned extensions for uploads and renames

Nothing here touches the filesystem except is_dir() on an approved path.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from models.infrastructure import FileManagerConfig, UserIdentity

logger = logging.getLogger(__name__)


# ==================== Capabilities ====================

CAPABILITIES = [
    "read", "write", "delete", "upload", "download", "rename",
    "copy", "move", "mkdir", "search", "quota", "info",
]

EXTENSION_ACTIONS = ("read", "write", "open", "delete")


def HasCapability(identity: UserIdentity, name: str) -> bool:
    """
    Check if a user holds a capability

    Args:
        identity: Resolved user identity
        name: Capability name (e.g., 'read', 'write', 'quota')

    Returns:
        bool: True if the capability is in the user's permission set
    """
    return name in (identity.permissions or [])


# ==================== Extension Rules ====================

def GetExtension(filename: str) -> str:
    """
    Lower-cased extension after the last dot, or "" when there is none

    ".htaccess" has the extension "htaccess"; "archive.tar.gz" has "gz".
    """
    name = Path(filename).name
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def ExtensionAllows(path: Path, action: str, config: Optional[FileManagerConfig]) -> bool:
    """
    Check the extension table for an action on a file

    Directories are always allowed. Files use the rule for their extension,
    falling back to the default map; no configuration at all allows.

    Args:
        path: Guard-approved absolute path
        action: One of 'read', 'write', 'open', 'delete'
        config: File manager configuration

    Returns:
        bool: True if the action is allowed
    """
    if action not in EXTENSION_ACTIONS:
        raise ValueError(f"Invalid extension action: {action}")

    if path.is_dir():
        return True

    if config is None:
        return True

    rules = config.extension_restrictions.get(GetExtension(path.name))
    if rules is None:
        rules = config.default_extension_permissions or {}

    return bool(rules.get(action, True))


def IsBannedExtension(filename: str, config: FileManagerConfig) -> bool:
    """
    Check a filename against the banned-extension list (case-insensitive)

    Args:
        filename: File name (not a path)
        config: File manager configuration

    Returns:
        bool: True if the extension is banned
    """
    extension = GetExtension(filename)
    return bool(extension) and extension in config.ban_extensions


# ==================== Folder Rules ====================

def MatchesFolderList(relative_path: str, folders: Iterable[str]) -> bool:
    """
    Exact or "folder/" prefix match of a relative path against a folder list

    Args:
        relative_path: Forward-slash path relative to root
        folders: Configured folder names, relative to root

    Returns:
        bool: True if the path is one of the folders or lies inside one
    """
    relative_path = relative_path.strip("/")

    for folder in folders:
        folder = folder.strip("/")
        if not folder:
            continue
        if relative_path == folder or relative_path.startswith(folder + "/"):
            return True

    return False


def IsProtectedFolder(relative_path: str, config: FileManagerConfig) -> bool:
    """Protected folders cannot be renamed, moved or deleted"""
    return MatchesFolderList(relative_path, config.protected_folders)


def IsReadOnlyFolder(relative_path: str, config: FileManagerConfig) -> bool:
    """Read-only (and upload-blocked) folders cannot receive uploads or new directories"""
    return (MatchesFolderList(relative_path, config.read_only_folders)
            or MatchesFolderList(relative_path, config.upload_blocked_folders))


def IsOperationDisabled(command: str, config: FileManagerConfig) -> bool:
    return command in config.disabled_operations
