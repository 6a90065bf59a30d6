"""
FileKeep Server - Path Guard

This module is the single authority on whether a client-supplied path may
be used. It handles:
- Rejection of ".." sequences and NUL bytes in decoded paths
- Canonicalization (symlinks, ".", "..") before the containment check
- Conversion between absolute paths and root-relative paths/tokens

Every other component only ever receives paths returned from here.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from exceptions import PathTraversalError
from token_codec import DecodePathToken, EncodePathToken, NormalizeRelativePath

logger = logging.getLogger(__name__)


# ==================== Validation ====================

def IsPathSafe(relative_path: str) -> bool:
    """
    Check a decoded path for traversal sequences and NUL bytes

    Args:
        relative_path: Decoded path string

    Returns:
        bool: True if the string contains neither ".." nor a NUL byte
    """
    if ".." in relative_path:
        logger.warning(f"Rejected path containing '..': {relative_path!r}")
        return False

    if "\0" in relative_path:
        logger.warning("Rejected path containing a NUL byte")
        return False

    return True


def IsWithinRoot(path: Path, root_path: Path) -> bool:
    """
    Check that an already-canonical path lies at or below the root

    Args:
        path: Canonical absolute path
        root_path: Canonical absolute root

    Returns:
        bool: True if path is root itself or inside it
    """
    return path == root_path or root_path in path.parents


# ==================== Resolution ====================

def ResolveRelativePath(relative_path: str, root_path: Path) -> Path:
    """
    Resolve a decoded relative path to an absolute path confined to root

    Existing path components are canonicalized (symlinks followed); a
    non-existent tail, as for a file about to be created, is joined
    lexically. The result must still be inside root.

    Args:
        relative_path: Decoded path relative to root
        root_path: Root directory all operations are confined to

    Returns:
        Path: Canonical absolute path

    Raises:
        PathTraversalError: If the path is unsafe or escapes root
    """
    relative_path = relative_path.lstrip("/\\")

    if not IsPathSafe(relative_path):
        raise PathTraversalError()

    root = Path(root_path).resolve()
    normalized = NormalizeRelativePath(relative_path)
    if not normalized:
        return root

    try:
        candidate = (root / normalized).resolve()
    except (OSError, RuntimeError) as e:
        # RuntimeError: symlink loop on older interpreters
        logger.warning(f"Failed to canonicalize {normalized!r}: {str(e)}")
        raise PathTraversalError("Invalid path")

    if not IsWithinRoot(candidate, root):
        logger.warning(f"Rejected path outside root: {normalized!r} -> {candidate}")
        raise PathTraversalError("Access denied: Path outside root")

    return candidate


def ResolvePath(token: Optional[str], root_path: Path) -> Path:
    """
    Resolve a client token to an absolute path confined to root

    Args:
        token: Path token from the request ("" or None for root)
        root_path: Root directory all operations are confined to

    Returns:
        Path: Canonical absolute path

    Raises:
        PathTraversalError: If the decoded path is unsafe or escapes root
    """
    return ResolveRelativePath(DecodePathToken(token), root_path)


def EnsureWithinRoot(path: Path, root_path: Path) -> Path:
    """
    Re-check containment of a path after the entity has been created

    Args:
        path: Path of a freshly created file or directory
        root_path: Root directory

    Returns:
        Path: Canonical path of the entity

    Raises:
        PathTraversalError: If the created entity resolves outside root
    """
    root = Path(root_path).resolve()
    resolved = Path(path).resolve()
    if not IsWithinRoot(resolved, root):
        logger.error(f"Created entity resolved outside root: {resolved}")
        raise PathTraversalError("Access denied: Path outside root")
    return resolved


# ==================== Relative Paths ====================

def ToRelativePath(path: Path, root_path: Path) -> str:
    """
    Convert an absolute path under root into its forward-slash relative form

    Args:
        path: Absolute path inside root
        root_path: Root directory

    Returns:
        str: Relative path ("" for the root itself)
    """
    root = Path(root_path).resolve()
    absolute = Path(os.path.abspath(path))
    if absolute == root:
        return ""
    return absolute.relative_to(root).as_posix()


def ToToken(path: Path, root_path: Path) -> str:
    """Token for an absolute path under root"""
    return EncodePathToken(ToRelativePath(path, root_path))


# ==================== Names ====================

MAX_FILENAME_LENGTH = 255


def SanitizeFilename(filename: str) -> str:
    """
    Strip separators, "..", NUL and control characters from a single name

    Used for names supplied to rename and mkdir. The result may be empty,
    which callers must reject.

    Args:
        filename: Client-supplied name

    Returns:
        str: Name safe to join under a directory, at most 255 characters
    """
    name = filename or ""
    for token in ("/", "\\", ".."):
        name = name.replace(token, "")
    name = "".join(ch for ch in name if ord(ch) >= 0x20 and ord(ch) != 0x7F)
    return name.strip()[:MAX_FILENAME_LENGTH]
