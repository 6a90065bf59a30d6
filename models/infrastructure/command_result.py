"""
FileKeep Server - Command Result Model

Explicit result type returned by every command: a JSON payload, a file to
stream, or a typed error. Only the HTTP layer turns it into a response.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from exceptions import FileManagerError


@dataclass
class DownloadTarget:
    """File to be streamed back to the client"""
    path: Path
    filename: str
    size: int


@dataclass
class CommandResult:
    payload: Optional[dict] = None
    download: Optional[DownloadTarget] = None
    error: Optional[FileManagerError] = None
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def Success(cls, payload: dict, status_code: int = 200) -> "CommandResult":
        return cls(payload=payload, status_code=status_code)

    @classmethod
    def Download(cls, target: DownloadTarget) -> "CommandResult":
        return cls(download=target)

    @classmethod
    def Failure(cls, error: FileManagerError) -> "CommandResult":
        return cls(error=error, status_code=error.code)
