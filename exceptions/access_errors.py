"""
FileKeep Server - Access Errors

Exceptions raised when a request tries to reach outside the root or
touches something its permissions or folder rules forbid.
"""

from .file_manager_error import FileManagerError


class PathTraversalError(FileManagerError):
    """Decoded path escapes the configured root."""
    code = 403
    default_message = "Invalid path: Path traversal detected"


class PermissionDeniedError(FileManagerError):
    """User lacks the capability or the extension rule forbids the action."""
    code = 403
    default_message = "Permission denied"


class ProtectedFolderViolationError(FileManagerError):
    """Protected folders cannot be renamed, moved or deleted."""
    code = 403
    default_message = "This folder is protected"


class ReadOnlyFolderViolationError(FileManagerError):
    """Read-only folders cannot receive uploads or new subdirectories."""
    code = 403
    default_message = "Cannot upload to this folder (read-only)"
