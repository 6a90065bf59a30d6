"""
FileKeep Server - Upload Models

Dataclasses for an incoming upload part and the outcome of receiving it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional


@dataclass
class UploadedPart:
    """One uploaded body as received by the HTTP layer"""
    filename: str
    stream: BinaryIO


@dataclass
class UploadProgress:
    """Result of ChunkAssembler.ReceivePart"""
    completed: bool
    received: int
    total: int
    final_path: Optional[Path] = None
