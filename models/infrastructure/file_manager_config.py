"""
FileKeep Server - File Manager Configuration Model

Validated configuration for the file-operation engine.
Loaded from config.json by managers.config_manager.ConfigManager.
"""

import re
import sys
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, field_validator


UNLIMITED_SIZE = sys.maxsize

_SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*([KMGTP]?)B?$", re.IGNORECASE)
_SIZE_UNITS = {"": 1, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3, "T": 1024 ** 4, "P": 1024 ** 5}


def ParseSize(value) -> int:
    """
    Parse a size with an optional unit into bytes

    Accepts plain integers, numeric strings (bytes) and strings such as
    "500MB", "0.5GB", "128M" or "10 kb". None, "" and -1 mean unlimited.

    Args:
        value: Size value from configuration

    Returns:
        int: Size in bytes

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None:
        return UNLIMITED_SIZE

    if isinstance(value, bool):
        raise ValueError(f"Invalid size: {value!r}")

    if isinstance(value, (int, float)):
        return UNLIMITED_SIZE if value < 0 else int(value)

    text = str(value).strip()
    if text in ("", "-1"):
        return UNLIMITED_SIZE

    match = _SIZE_PATTERN.match(text)
    if not match:
        raise ValueError(f"Invalid size: {value!r}")

    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit.upper()])


class FileManagerConfig(BaseModel):
    """Configuration for the sandboxed file manager"""

    # Storage locations
    root_path: Path = Path("files")
    root_url: str = ""
    trash_name: str = ".trash"
    enable_trash: bool = True
    chunk_path: Path = Path(tempfile.gettempdir()) / "filekeep_chunks"
    chunk_max_age_seconds: int = 86400
    database_path: str = "database/filekeep.db"

    # Size limits (bytes, or strings such as "500MB")
    max_file_size: int = ParseSize("0.5GB")
    upload_size_limit: int = ParseSize("512MB")
    post_size_limit: int = ParseSize("512MB")
    memory_limit: int = UNLIMITED_SIZE

    # Folder rules, relative to root
    read_only_folders: List[str] = [".trash", "system", "config"]
    protected_folders: List[str] = [".trash", "uploads", "backup"]
    upload_blocked_folders: List[str] = ["backup"]
    quota_excluded_folders: List[str] = ["backup"]

    # None disables content sniffing entirely
    allowed_mime_types: Optional[List[str]] = [
        "image/*", "video/*", "audio/*", "text/*", "application/pdf"
    ]
    ban_extensions: List[str] = []
    extension_restrictions: Dict[str, Dict[str, bool]] = {}
    default_extension_permissions: Dict[str, bool] = {
        "read": True, "write": True, "open": True, "delete": True
    }

    disabled_operations: List[str] = []
    enabled_plugins: List[str] = []

    @field_validator("max_file_size", "upload_size_limit", "post_size_limit", "memory_limit", mode="before")
    @classmethod
    def ParseSizeFields(cls, value):
        return ParseSize(value)

    @field_validator("ban_extensions")
    @classmethod
    def NormalizeBannedExtensions(cls, value: List[str]) -> List[str]:
        return [ext.lower().lstrip(".") for ext in value]

    @field_validator("extension_restrictions")
    @classmethod
    def NormalizeRestrictionKeys(cls, value: Dict[str, Dict[str, bool]]) -> Dict[str, Dict[str, bool]]:
        return {ext.lower().lstrip("."): rules for ext, rules in value.items()}

    @property
    def trash_path(self) -> Path:
        return self.root_path / self.trash_name
