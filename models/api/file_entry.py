"""
FileKeep Server - File Entry API Model

Pydantic model for a single file or directory in connector responses.
"""

from typing import Optional
from pydantic import BaseModel


class FileEntry(BaseModel):
    """
    Response model for one filesystem entry

    Built fresh for every response; never cached across requests.
    """
    name: str
    hash: str  # path token
    mime: str  # "directory" for folders
    ts: int  # modification time, epoch seconds
    size: int
    read: bool
    write: bool
    delete: bool
    open: bool
    locked: bool = False
    volumeid: Optional[str] = None  # directories only
    dirs: Optional[int] = None  # directories only: 1 when it has subdirectories

    # Detailed entries (info command)
    path: Optional[str] = None
    url: Optional[str] = None
    dim: Optional[str] = None

    def ToResponse(self) -> dict:
        return self.model_dump(exclude_none=True)
