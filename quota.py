"""
FileKeep Server - Quota Tracker

This module derives storage figures for a user on every request:
- Users with a quota ceiling are measured by a recursive walk of the root
- Users without one see the host disk statistics
- The largest acceptable upload is bounded by host limits and free quota

Nothing is cached or persisted; the walk is O(number of files).
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List

from models.infrastructure import FileManagerConfig, Quota, UserIdentity

logger = logging.getLogger(__name__)


# ==================== Space Calculation ====================

def CalculateUsedSpace(path: Path, excluded_paths: Iterable[Path] = ()) -> int:
    """
    Sum file sizes below a directory

    Directories contribute nothing themselves. Unreadable directories and
    files count as 0 instead of failing the whole walk. Symlinks are not
    followed.

    Args:
        path: Directory to measure
        excluded_paths: Absolute directories skipped entirely

    Returns:
        int: Total bytes
    """
    excluded = {Path(p) for p in excluded_paths}
    total = 0

    try:
        entries = list(os.scandir(path))
    except OSError as e:
        logger.warning(f"Cannot read directory while calculating space: {path} ({str(e)})")
        return 0

    for entry in entries:
        try:
            if entry.is_file(follow_symlinks=False):
                total += entry.stat(follow_symlinks=False).st_size
            elif entry.is_dir(follow_symlinks=False):
                if Path(entry.path) in excluded:
                    continue
                total += CalculateUsedSpace(Path(entry.path), excluded)
        except OSError as e:
            logger.warning(f"Cannot stat entry while calculating space: {entry.path} ({str(e)})")

    return total


def GetExcludedPaths(root_path: Path, config: FileManagerConfig) -> List[Path]:
    root = Path(root_path)
    return [root / folder.strip("/") for folder in config.quota_excluded_folders if folder.strip("/")]


# ==================== Quota ====================

def ComputeQuota(identity: UserIdentity, root_path: Path, config: FileManagerConfig) -> Quota:
    """
    Compute total/used/free/max-upload figures for a user

    With a positive ceiling: used is the recursive size of root, total is the
    ceiling and free is total - used (possibly negative). Without one: total
    and free come from the host disk and used is their difference.

    Args:
        identity: Resolved user identity (quota in bytes, 0 for none)
        root_path: Root directory
        config: File manager configuration

    Returns:
        Quota: Raw figures; free and max_upload are floored only in ToResponse()
    """
    root = Path(root_path)

    if identity.HasQuotaCeiling():
        used = CalculateUsedSpace(root, GetExcludedPaths(root, config))
        total = identity.quota
        free = total - used
    else:
        usage = shutil.disk_usage(root)
        total = usage.total
        free = usage.free
        used = total - free

    max_upload = min(config.upload_size_limit, config.post_size_limit, config.memory_limit)
    if identity.HasQuotaCeiling():
        max_upload = min(max_upload, free)

    return Quota(total=total, used=used, free=free, max_upload=max_upload)


def AdmitsUpload(identity: UserIdentity, root_path: Path, config: FileManagerConfig) -> bool:
    """
    Check whether a user may store more bytes

    Must be called before any upload byte is persisted.

    Returns:
        bool: True without a ceiling, otherwise True only while free > 0
    """
    if not identity.HasQuotaCeiling():
        return True

    quota = ComputeQuota(identity, root_path, config)
    if quota.free <= 0:
        logger.warning(
            f"Upload refused for user '{identity.username}': {quota.used} of {quota.total} bytes used"
        )
        return False

    return True
