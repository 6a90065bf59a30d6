"""
FileKeep Server - Chunk Session Model

Dataclass describing an in-progress chunked upload.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Set


@dataclass
class ChunkSession:
    """
    Represents the parts of one upload persisted so far

    The set of received parts is rebuilt from the part files on disk each
    time, so retried or out-of-order parts are counted once.
    """
    upload_id: str
    total_parts: int
    target_filename: str
    target_directory: Path
    session_path: Path
    parts_received: Set[int] = field(default_factory=set)

    def ReceivedCount(self) -> int:
        return len(self.parts_received)

    def MissingParts(self) -> List[int]:
        return [index for index in range(self.total_parts) if index not in self.parts_received]

    def IsComplete(self) -> bool:
        return not self.MissingParts()
