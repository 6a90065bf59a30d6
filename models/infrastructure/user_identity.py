"""
FileKeep Server - User Identity Model

Dataclass for the resolved identity handed to the file-operation engine.
"""

from dataclasses import dataclass, field
from typing import List, Union


@dataclass
class UserIdentity:
    """
    Authenticated user as resolved by the identity provider

    The engine trusts this object; it never re-checks credentials.
    """
    id: Union[int, str]
    username: str
    permissions: List[str] = field(default_factory=list)
    quota: int = 0  # bytes, 0 means no ceiling

    def HasQuotaCeiling(self) -> bool:
        return self.quota > 0
