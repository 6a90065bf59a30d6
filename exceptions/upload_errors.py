"""
FileKeep Server - Upload Errors

Exceptions raised while receiving, merging and validating uploaded files.
"""

from .file_manager_error import FileManagerError


class BannedExtensionError(FileManagerError):
    code = 403
    default_message = "File type not allowed"


class MimeTypeRejectedError(FileManagerError):
    code = 415
    default_message = "MIME type not allowed"


class QuotaExceededError(FileManagerError):
    code = 507
    default_message = "Quota exceeded"


class FileTooLargeError(FileManagerError):
    code = 413
    default_message = "File too large"


class MissingChunkError(FileManagerError):
    code = 500
    default_message = "Missing chunk"


class ChunkWriteFailedError(FileManagerError):
    code = 500
    default_message = "Failed to save chunk"
