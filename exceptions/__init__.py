"""
FileKeep Server - Exceptions Package

Contains the typed error taxonomy raised by the file-operation engine.
Every error carries a message and the numeric code the HTTP layer answers with.
"""

from .file_manager_error import FileManagerError, InternalServerError
from .access_errors import (
    PathTraversalError,
    PermissionDeniedError,
    ProtectedFolderViolationError,
    ReadOnlyFolderViolationError,
)
from .request_errors import (
    UnknownCommandError,
    InvalidRequestError,
    AlreadyExistsError,
    NotFoundError,
    PluginUnavailableError,
    RateLimitedError,
)
from .upload_errors import (
    BannedExtensionError,
    MimeTypeRejectedError,
    QuotaExceededError,
    FileTooLargeError,
    MissingChunkError,
    ChunkWriteFailedError,
)

__all__ = [
    'FileManagerError',
    'InternalServerError',
    'PathTraversalError',
    'PermissionDeniedError',
    'ProtectedFolderViolationError',
    'ReadOnlyFolderViolationError',
    'UnknownCommandError',
    'InvalidRequestError',
    'AlreadyExistsError',
    'NotFoundError',
    'PluginUnavailableError',
    'RateLimitedError',
    'BannedExtensionError',
    'MimeTypeRejectedError',
    'QuotaExceededError',
    'FileTooLargeError',
    'MissingChunkError',
    'ChunkWriteFailedError',
]
