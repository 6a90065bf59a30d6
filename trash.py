"""
FileKeep Server - Trash Manager

This module implements soft delete and restore:
- Entries outside the trash are moved under it, keeping their relative path
- Entries already inside the trash are deleted permanently
- Trashed entries are moved back to their original location on restore

Trash layout: <root>/<trash_name>/<original relative path>
"""

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Iterable, List, Tuple

from chunk_uploader import GetUniqueFilename
from exceptions import (
    AlreadyExistsError, FileManagerError, InvalidRequestError, NotFoundError,
    PathTraversalError
)
from path_guard import IsWithinRoot, ResolveRelativePath, ToRelativePath
from token_codec import DecodePathToken

logger = logging.getLogger(__name__)


def IsInsideTrash(path: Path, trash_root: Path) -> bool:
    """True for entries strictly below the trash root"""
    return Path(trash_root) in Path(path).parents


def PermanentlyDelete(path: Path) -> None:
    """Remove a file, symlink or directory tree"""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def PrepareTrashDirectory(trash_root: Path, relative_parent: Path) -> Path:
    """
    Create the trash folder mirroring relative_parent

    A component already taken by a file (or symlink) in the trash is
    replaced with the first numbered name that is free or a directory.
    """
    directory = trash_root
    for part in relative_parent.parts:
        candidate = part
        counter = 0
        while os.path.lexists(directory / candidate) and (
            (directory / candidate).is_symlink() or not (directory / candidate).is_dir()
        ):
            counter += 1
            candidate = f"{part}_{counter}"
        directory = directory / candidate
        directory.mkdir(exist_ok=True)
    return directory


def SoftDelete(path: Path, trash_root: Path, root_path: Path) -> Path:
    """
    Move an entry into the trash, or delete it if it is already there

    Args:
        path: Guard-approved path of the entry
        trash_root: Trash directory under root
        root_path: Root directory

    Returns:
        Path: New location inside the trash, or the deleted path

    Raises:
        NotFoundError: If the entry does not exist
    """
    if not path.exists() and not path.is_symlink():
        raise NotFoundError(f"File not found: {path.name}")

    if IsInsideTrash(path, trash_root):
        PermanentlyDelete(path)
        logger.info(f"Permanently deleted {ToRelativePath(path, root_path)}")
        return path

    relative_path = Path(ToRelativePath(path, root_path))
    trash_directory = PrepareTrashDirectory(Path(trash_root), relative_path.parent)

    destination = trash_directory / GetUniqueFilename(trash_directory, path.name)
    shutil.move(str(path), str(destination))

    logger.info(f"Moved {relative_path.as_posix()} to trash as {ToRelativePath(destination, root_path)}")
    return destination


def RestoreFromTrash(token: str, trash_root: Path, root_path: Path) -> Path:
    """
    Move a trashed entry back to its original location

    Args:
        token: Token of the entry inside the trash
        trash_root: Trash directory under root
        root_path: Root directory

    Returns:
        Path: Restored location

    Raises:
        PathTraversalError: If the token decodes to an unsafe path
        NotFoundError: If the entry is not inside the trash or does not exist
        AlreadyExistsError: If the original location is occupied
    """
    root = Path(root_path).resolve()
    trash_name = ToRelativePath(trash_root, root)
    relative_path = DecodePathToken(token).lstrip("/\\")

    pattern = r"^" + re.escape(trash_name) + r"(/|$)"
    if not re.match(pattern, relative_path):
        raise NotFoundError("File not found in trash")

    original_path = re.sub(pattern, "", relative_path, count=1)
    if not original_path:
        raise InvalidRequestError("Cannot restore the trash folder itself")

    source = ResolveRelativePath(relative_path, root)
    if not IsInsideTrash(source, Path(trash_root).resolve()):
        raise NotFoundError("File not found in trash")
    if not source.exists() and not source.is_symlink():
        raise NotFoundError("File not found in trash")

    destination = ResolveRelativePath(original_path, root)
    if destination.exists() or destination.is_symlink():
        raise AlreadyExistsError("File already exists at original location")

    destination.parent.mkdir(parents=True, exist_ok=True)
    if not IsWithinRoot(destination.parent.resolve(), root):
        raise PathTraversalError("Access denied: Path outside root")

    shutil.move(str(source), str(destination))

    logger.info(f"Restored {original_path} from trash")
    return destination


def RestoreEntries(tokens: Iterable[str], trash_root: Path, root_path: Path) -> Tuple[List[Path], List[str]]:
    """
    Restore several trashed entries, collecting failures instead of stopping

    Returns:
        Tuple[List[Path], List[str]]: Restored paths and per-entry error messages
    """
    restored = []
    errors = []

    for token in tokens:
        try:
            restored.append(RestoreFromTrash(token, trash_root, root_path))
        except FileManagerError as e:
            name = Path(DecodePathToken(token)).name or token
            logger.warning(f"Failed to restore {name}: {e.message}")
            errors.append(f"{name}: {e.message}")
        except OSError as e:
            name = Path(DecodePathToken(token)).name or token
            logger.error(f"Filesystem error restoring {name}: {e}")
            errors.append(f"{name}: Filesystem error: {e.strerror or e}")

    return restored, errors


def EmptyTrash(trash_root: Path, root_path: Path) -> List[str]:
    """
    Permanently delete everything inside the trash

    Returns:
        List[str]: Relative paths of the removed top-level entries
    """
    trash_root = Path(trash_root)
    if not trash_root.is_dir():
        return []

    removed = []
    for entry in sorted(trash_root.iterdir()):
        removed.append(ToRelativePath(entry, root_path))
        SoftDelete(entry, trash_root, root_path)

    logger.info(f"Emptied trash: {len(removed)} entries removed")
    return removed
