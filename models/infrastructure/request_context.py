"""
FileKeep Server - Request Context Model

Dataclass carrying everything a single command needs.
Built once per request and passed by argument through every operation.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from models.infrastructure.file_manager_config import FileManagerConfig
from models.infrastructure.user_identity import UserIdentity


@dataclass
class RequestContext:
    """
    Request-scoped state for the command engine
    """
    identity: UserIdentity
    config: FileManagerConfig
    plugins: Optional[Any] = None  # plugins.PluginRegistry
    client_address: str = ""

    @property
    def root_path(self) -> Path:
        return Path(self.config.root_path).resolve()

    @property
    def trash_path(self) -> Path:
        return self.root_path / self.config.trash_name

    @property
    def chunk_path(self) -> Path:
        return Path(self.config.chunk_path)

    @property
    def username(self) -> str:
        return self.identity.username
