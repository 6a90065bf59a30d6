"""
FileKeep Server - API Models Package

This package contains Pydantic models serialized into connector responses.
"""

from models.api.file_entry import FileEntry

__all__ = [
    'FileEntry',
]
