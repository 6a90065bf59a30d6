"""
FileKeep Server - Infrastructure Models Package

This package contains the models the file-operation engine passes between
its components: configuration, identity, request context, quota, chunk
sessions and command results.
"""

from models.infrastructure.file_manager_config import FileManagerConfig, ParseSize, UNLIMITED_SIZE
from models.infrastructure.user_identity import UserIdentity
from models.infrastructure.request_context import RequestContext
from models.infrastructure.quota import Quota
from models.infrastructure.chunk_session import ChunkSession
from models.infrastructure.upload import UploadedPart, UploadProgress
from models.infrastructure.command_result import CommandResult, DownloadTarget

__all__ = [
    'FileManagerConfig',
    'ParseSize',
    'UNLIMITED_SIZE',
    'UserIdentity',
    'RequestContext',
    'Quota',
    'ChunkSession',
    'UploadedPart',
    'UploadProgress',
    'CommandResult',
    'DownloadTarget',
]
