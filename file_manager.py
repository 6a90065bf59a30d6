"""
FileKeep Server - Command Engine

This module dispatches connector commands to their handlers:
- open, upload, download, delete, rename, copy, cut, mkdir,
  info, search, restore, emptytrash
- Plugin commands (video_process, publiclink_*) via the plugin registry

Each command is registered with the capability it requires. Handlers take
the request parameters and a RequestContext and either return a
CommandResult or raise a FileManagerError; ExecuteCommand turns every
outcome into a CommandResult.
"""

import logging
import mimetypes
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from PIL import Image, UnidentifiedImageError

from chunk_uploader import (
    GetStreamSize, GetUniqueFilename, ReceivePart, SanitizeUploadFilename
)
from exceptions import (
    AlreadyExistsError, BannedExtensionError, FileManagerError, InternalServerError,
    InvalidRequestError, NotFoundError, PermissionDeniedError, PluginUnavailableError,
    ProtectedFolderViolationError, QuotaExceededError, ReadOnlyFolderViolationError,
    UnknownCommandError
)
from models.api import FileEntry
from models.infrastructure import CommandResult, DownloadTarget, RequestContext
from path_guard import (
    EnsureWithinRoot, IsWithinRoot, ResolvePath, SanitizeFilename,
    ToRelativePath, ToToken
)
from permissions import (
    ExtensionAllows, GetExtension, HasCapability, IsBannedExtension,
    IsOperationDisabled, IsProtectedFolder, IsReadOnlyFolder
)
from plugins import IsPluginCommand
from quota import AdmitsUpload, ComputeQuota
from token_codec import EncodePathToken
from trash import EmptyTrash, IsInsideTrash, PermanentlyDelete, RestoreEntries, SoftDelete

logger = logging.getLogger(__name__)


DEFAULT_COMMAND = "open"
DEFAULT_FOLDER_NAME = "New Folder"
ROOT_DISPLAY_NAME = "Root"
VOLUME_ID = "l1_"
DIRECTORY_MODE = 0o750


# ==================== Entries ====================

def HasSubdirectories(path: Path) -> bool:
    try:
        with os.scandir(path) as entries:
            return any(entry.is_dir(follow_symlinks=False) for entry in entries)
    except OSError:
        return False


def GetImageDimensions(path: Path) -> Optional[str]:
    """Return "WxH" for readable images, None otherwise"""
    try:
        with Image.open(path) as image:
            return f"{image.width}x{image.height}"
    except (UnidentifiedImageError, OSError):
        return None


def BuildFileEntry(path: Path, context: RequestContext, detailed: bool = False) -> Optional[dict]:
    """
    Build the response entry for one file or directory

    Args:
        path: Guard-approved path
        context: Request context
        detailed: Add path, url and image dimensions (info command)

    Returns:
        dict: Entry for the response, or None if the path cannot be stat'ed
    """
    root = context.root_path
    config = context.config
    identity = context.identity

    try:
        stat_result = path.stat()
    except OSError:
        return None

    is_directory = path.is_dir()
    relative_path = ToRelativePath(path, root)
    protected = bool(relative_path) and IsProtectedFolder(relative_path, config)

    if is_directory:
        mime = "directory"
        can_write = HasCapability(identity, "write") and not IsReadOnlyFolder(relative_path, config)
    else:
        mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        can_write = HasCapability(identity, "write") and ExtensionAllows(path, "write", config)

    can_delete = (
        HasCapability(identity, "delete")
        and ExtensionAllows(path, "delete", config)
        and (not protected or IsInsideTrash(path, context.trash_path))
    )

    entry = FileEntry(
        name=path.name if path != root else ROOT_DISPLAY_NAME,
        hash=EncodePathToken(relative_path),
        mime=mime,
        ts=int(stat_result.st_mtime),
        size=0 if is_directory else stat_result.st_size,
        read=HasCapability(identity, "read") and ExtensionAllows(path, "read", config),
        write=can_write,
        delete=can_delete,
        open=ExtensionAllows(path, "open", config),
        locked=protected
    )

    if is_directory:
        entry.volumeid = VOLUME_ID
        entry.dirs = 1 if HasSubdirectories(path) else 0

    if detailed:
        entry.path = relative_path
        entry.url = config.root_url + relative_path
        if not is_directory and mime.startswith("image/"):
            entry.dim = GetImageDimensions(path)

    return entry.ToResponse()


# ==================== Parameter Helpers ====================

def GetListParam(params: dict, name: str) -> List[str]:
    """Read a list parameter sent as "name" or "name[]" """
    value = params.get(name)
    if value is None:
        value = params.get(f"{name}[]")
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [item for item in value if item is not None]
    return [value]


def GetIntParam(params: dict, name: str, default: int) -> int:
    value = params.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"Invalid value for '{name}': {value!r}")


def ResolveExisting(token: Optional[str], context: RequestContext) -> Path:
    path = ResolvePath(token, context.root_path)
    if not path.exists() and not path.is_symlink():
        raise NotFoundError()
    return path


def ResolveDirectory(token: Optional[str], context: RequestContext) -> Path:
    path = ResolveExisting(token, context)
    if not path.is_dir():
        raise InvalidRequestError("Target is not a directory")
    return path


def RequireNotRoot(path: Path, context: RequestContext) -> None:
    if path == context.root_path or path == context.trash_path:
        raise ProtectedFolderViolationError()


def RemoveNestedPaths(paths: List[Path]) -> List[Path]:
    """Drop paths that lie inside another path of the same batch"""
    selected = set(paths)
    return [path for path in paths if not any(parent in selected for parent in path.parents)]


# ==================== Commands ====================

def HandleOpen(params: dict, context: RequestContext) -> CommandResult:
    """List a directory"""
    root = context.root_path
    path = ResolveDirectory(params.get("target"), context)

    files = []
    for child in sorted(path.iterdir(), key=lambda p: p.name.lower()):
        if child.is_symlink() and not IsWithinRoot(child.resolve(), root):
            continue
        entry = BuildFileEntry(child, context)
        if entry is not None:
            files.append(entry)

    result = {
        "cwd": BuildFileEntry(path, context),
        "files": files
    }

    if HasCapability(context.identity, "quota"):
        result["quota"] = ComputeQuota(context.identity, root, context.config).ToResponse()

    return CommandResult.Success(result)




def HandleUpload(params: dict, context: RequestContext) -> CommandResult:
    """
    Store an uploaded file or one part of a chunked upload

    Parameters: target (directory token), upload (list of UploadedPart),
    part, parts, id.
    """
    root = context.root_path
    config = context.config

    target_dir = ResolveDirectory(params.get("target"), context)
    relative_dir = ToRelativePath(target_dir, root)
    if IsReadOnlyFolder(relative_dir, config):
        raise ReadOnlyFolderViolationError(f"Cannot upload to read-only folder: {relative_dir}")

    uploads = GetListParam(params, "upload")
    if not uploads:
        raise InvalidRequestError("No file uploaded")

    part_index = GetIntParam(params, "part", 0)
    total_parts = GetIntParam(params, "parts", 1)
    if total_parts > 1 and len(uploads) > 1:
        raise InvalidRequestError("Chunked uploads carry exactly one file per request")

    if not AdmitsUpload(context.identity, root, config):
        raise QuotaExceededError()

    for upload in uploads:
        filename = SanitizeUploadFilename(upload.filename)
        if IsBannedExtension(filename, config):
            raise BannedExtensionError(f"File type not allowed: {GetExtension(filename)}")
        if GetStreamSize(upload.stream) == 0:
            raise InvalidRequestError(f"Empty file upload: {upload.filename}")

    added = []
    progress = None
    for upload in uploads:
        progress = ReceivePart(
            upload_id=str(params.get("id") or ""),
            part_index=part_index,
            total_parts=total_parts,
            source=upload.stream,
            target_dir=target_dir,
            raw_filename=upload.filename,
            config=config,
            chunk_root=context.chunk_path,
            root_path=root,
            owner_id=context.identity.id
        )
        if progress.completed:
            logger.info(
                f"User '{context.username}' uploaded {ToRelativePath(progress.final_path, root)}"
            )
            added.append(BuildFileEntry(progress.final_path, context))

    if not progress.completed:
        return CommandResult.Success({
            "chunkMerged": False,
            "received": progress.received,
            "total": progress.total
        })

    return CommandResult.Success({"added": added, "chunkMerged": True})


def HandleDownload(params: dict, context: RequestContext) -> CommandResult:
    """Return the file to stream back to the client"""
    path = ResolveExisting(params.get("target"), context)
    if not path.is_file():
        raise InvalidRequestError("Target is not a file")

    if not ExtensionAllows(path, "read", context.config):
        raise PermissionDeniedError(f"Reading .{GetExtension(path.name)} files is not allowed")

    logger.info(f"User '{context.username}' downloaded {ToRelativePath(path, context.root_path)}")
    return CommandResult.Download(DownloadTarget(path=path, filename=path.name, size=path.stat().st_size))


def HandleDelete(params: dict, context: RequestContext) -> CommandResult:
    """
    Move targets to the trash, or delete them permanently

    Targets already inside the trash, or every target when the trash is
    disabled, are removed permanently. All targets are checked before any
    is touched.
    """
    root = context.root_path
    config = context.config
    trash_path = context.trash_path

    targets = GetListParam(params, "targets") or GetListParam(params, "target")
    if not targets:
        raise InvalidRequestError("No files specified")

    resolved = []
    for token in targets:
        path = ResolveExisting(token, context)
        RequireNotRoot(path, context)

        if not ExtensionAllows(path, "delete", config):
            raise PermissionDeniedError(f"Deleting .{GetExtension(path.name)} files is not allowed")

        relative_path = ToRelativePath(path, root)
        if IsProtectedFolder(relative_path, config) and not IsInsideTrash(path, trash_path):
            raise ProtectedFolderViolationError(f"Cannot delete protected folder: {relative_path}")

        resolved.append((token, path))

    pending = set(RemoveNestedPaths([path for _, path in resolved]))

    removed = []
    for token, path in resolved:
        if path in pending:
            pending.discard(path)
            if config.enable_trash:
                SoftDelete(path, trash_path, root)
            else:
                PermanentlyDelete(path)
                logger.info(f"Permanently deleted {ToRelativePath(path, root)}")
        removed.append(token)

    logger.info(f"User '{context.username}' deleted {len(removed)} item(s)")
    return CommandResult.Success({"removed": removed})


def HandleRename(params: dict, context: RequestContext) -> CommandResult:
    root = context.root_path
    config = context.config

    target = params.get("target")
    path = ResolveExisting(target, context)
    RequireNotRoot(path, context)

    name = SanitizeFilename(params.get("name") or "")
    if not name:
        raise InvalidRequestError("Invalid name")

    if IsBannedExtension(name, config):
        raise BannedExtensionError(f"Dangerous extension not allowed: {GetExtension(name)}")

    if not ExtensionAllows(path, "write", config):
        raise PermissionDeniedError(f"Renaming .{GetExtension(path.name)} files is not allowed")

    relative_path = ToRelativePath(path, root)
    if IsProtectedFolder(relative_path, config):
        raise ProtectedFolderViolationError(f"Cannot rename protected folder: {relative_path}")

    new_path = path.parent / name
    if os.path.lexists(new_path):
        raise AlreadyExistsError()

    path.rename(new_path)
    EnsureWithinRoot(new_path, root)

    logger.info(f"User '{context.username}' renamed {relative_path} to {name}")
    return CommandResult.Success({
        "added": [BuildFileEntry(new_path, context)],
        "removed": [target]
    })


def ResolveTransfer(params: dict, context: RequestContext, action: str):
    """
    Resolve and check the sources and destination of copy/cut

    Returns:
        Tuple[Path, List[Tuple[str, Path]]]: Destination and (token, source) pairs
    """
    root = context.root_path

    targets = GetListParam(params, "targets")
    if not targets:
        raise InvalidRequestError("No files specified")

    destination = ResolvePath(params.get("dst"), root)
    if not destination.is_dir():
        raise InvalidRequestError("Destination is not a directory")

    relative_destination = ToRelativePath(destination, root)
    if IsReadOnlyFolder(relative_destination, context.config):
        raise ReadOnlyFolderViolationError(f"Cannot {action} into read-only folder: {relative_destination}")

    sources = []
    for token in targets:
        source = ResolveExisting(token, context)
        RequireNotRoot(source, context)
        if source == destination or source in destination.parents:
            raise InvalidRequestError(f"Cannot {action} a folder into itself")
        sources.append((token, source))

    selected = {source for _, source in sources}
    for _, source in sources:
        if any(parent in selected for parent in source.parents):
            raise InvalidRequestError(f"Cannot {action} a folder together with its contents")

    return destination, sources


def HandleCopy(params: dict, context: RequestContext) -> CommandResult:
    """Copy targets into dst; name clashes get a numbered suffix"""
    root = context.root_path
    destination, sources = ResolveTransfer(params, context, "copy")

    if not AdmitsUpload(context.identity, root, context.config):
        raise QuotaExceededError()

    added = []
    for _, source in sources:
        new_path = destination / GetUniqueFilename(destination, source.name)
        if source.is_dir():
            shutil.copytree(source, new_path, symlinks=True)
        else:
            shutil.copy2(source, new_path)
        added.append(BuildFileEntry(new_path, context))

    logger.info(
        f"User '{context.username}' copied {len(added)} item(s) to {ToRelativePath(destination, root) or '/'}"
    )
    return CommandResult.Success({"added": added})


def HandleCut(params: dict, context: RequestContext) -> CommandResult:
    """Move targets into dst"""
    root = context.root_path
    config = context.config
    destination, sources = ResolveTransfer(params, context, "move")

    names = set()
    for _, source in sources:
        relative_path = ToRelativePath(source, root)
        if IsProtectedFolder(relative_path, config):
            raise ProtectedFolderViolationError(f"Cannot move protected folder: {relative_path}")
        if source.name in names or os.path.lexists(destination / source.name):
            raise AlreadyExistsError(f"File already exists: {source.name}")
        names.add(source.name)

    added = []
    removed = []
    for token, source in sources:
        new_path = destination / source.name
        shutil.move(str(source), str(new_path))
        added.append(BuildFileEntry(new_path, context))
        removed.append(token)

    logger.info(
        f"User '{context.username}' moved {len(added)} item(s) to {ToRelativePath(destination, root) or '/'}"
    )
    return CommandResult.Success({"added": added, "removed": removed})


def HandleMkdir(params: dict, context: RequestContext) -> CommandResult:
    root = context.root_path

    name = params.get("name") or DEFAULT_FOLDER_NAME
    if name.startswith("."):
        raise InvalidRequestError("Folder names cannot start with a dot (.)")

    name = SanitizeFilename(name)
    if not name:
        raise InvalidRequestError("Invalid folder name")
    if name.startswith("."):
        raise InvalidRequestError("Folder names cannot start with a dot (.)")

    parent = ResolveDirectory(params.get("target"), context)
    relative_parent = ToRelativePath(parent, root)
    if IsReadOnlyFolder(relative_parent, context.config):
        raise ReadOnlyFolderViolationError(f"Cannot create folders in read-only folder: {relative_parent}")

    new_path = parent / name
    if os.path.lexists(new_path):
        raise AlreadyExistsError("Directory already exists")

    new_path.mkdir(mode=DIRECTORY_MODE)
    EnsureWithinRoot(new_path, root)

    logger.info(f"User '{context.username}' created folder {ToRelativePath(new_path, root)}")
    return CommandResult.Success({"added": [BuildFileEntry(new_path, context)]})


def HandleInfo(params: dict, context: RequestContext) -> CommandResult:
    path = ResolveExisting(params.get("target"), context)
    entry = BuildFileEntry(path, context, detailed=True)
    if entry is None:
        raise NotFoundError()
    return CommandResult.Success(entry)


def HandleSearch(params: dict, context: RequestContext) -> CommandResult:
    """Recursive, case-insensitive name search below target"""
    query = str(params.get("q") or "").strip().lower()
    if not query:
        raise InvalidRequestError("Search query is required")

    base = ResolveDirectory(params.get("target"), context)

    files = []
    for directory, dirnames, filenames in os.walk(base):
        dirnames.sort()
        for name in sorted(dirnames + filenames):
            if query in name.lower():
                entry = BuildFileEntry(Path(directory) / name, context)
                if entry is not None:
                    files.append(entry)

    logger.info(f"User '{context.username}' searched for '{query}': {len(files)} result(s)")
    return CommandResult.Success({"files": files})


def HandleRestore(params: dict, context: RequestContext) -> CommandResult:
    """Restore trashed entries; failures are reported per entry"""
    root = context.root_path

    hashes = GetListParam(params, "hashes")
    if not hashes:
        raise InvalidRequestError("No files specified")

    restored, errors = RestoreEntries(hashes, context.trash_path, root)

    logger.info(f"User '{context.username}' restored {len(restored)} item(s) from trash")
    return CommandResult.Success({
        "success": len(restored),
        "restored": [ToToken(path, root) for path in restored],
        "added": [BuildFileEntry(path, context) for path in restored],
        "errors": errors
    })


def HandleEmptyTrash(params: dict, context: RequestContext) -> CommandResult:
    removed = EmptyTrash(context.trash_path, context.root_path)
    logger.info(f"User '{context.username}' emptied the trash")
    return CommandResult.Success({"removed": [EncodePathToken(path) for path in removed]})


# ==================== Dispatch ====================

@dataclass(frozen=True)
class CommandSpec:
    capability: str
    handler: Callable[[dict, RequestContext], CommandResult]


COMMAND_REGISTRY: Dict[str, CommandSpec] = {
    "open": CommandSpec("read", HandleOpen),
    "upload": CommandSpec("write", HandleUpload),
    "download": CommandSpec("read", HandleDownload),
    "delete": CommandSpec("delete", HandleDelete),
    "rename": CommandSpec("write", HandleRename),
    "copy": CommandSpec("write", HandleCopy),
    "cut": CommandSpec("write", HandleCut),
    "mkdir": CommandSpec("write", HandleMkdir),
    "info": CommandSpec("read", HandleInfo),
    "search": CommandSpec("read", HandleSearch),
    "restore": CommandSpec("write", HandleRestore),
    "emptytrash": CommandSpec("delete", HandleEmptyTrash),
}


def ExecuteCommand(command: Optional[str], params: dict, context: RequestContext) -> CommandResult:
    """
    Run one connector command

    Args:
        command: Command name (defaults to "open")
        params: Request parameters
        context: Request context

    Returns:
        CommandResult: Success payload, download target or typed error
    """
    command = (command or DEFAULT_COMMAND).strip()

    try:
        if IsOperationDisabled(command, context.config):
            raise PermissionDeniedError("Operation not allowed")

        if IsPluginCommand(command):
            if context.plugins is None:
                raise PluginUnavailableError(f"Plugin not available for command: {command}")
            return context.plugins.Dispatch(command, params, context)

        command_spec = COMMAND_REGISTRY.get(command)
        if command_spec is None:
            raise UnknownCommandError(f"Unknown command: {command}")

        if not HasCapability(context.identity, command_spec.capability):
            raise PermissionDeniedError()

        return command_spec.handler(params, context)

    except FileManagerError as e:
        logger.warning(f"Command '{command}' failed for user '{context.username}': {e.message} ({e.code})")
        return CommandResult.Failure(e)

    except OSError as e:
        logger.error(f"Filesystem error in command '{command}' for user '{context.username}': {str(e)}")
        return CommandResult.Failure(InternalServerError(f"Filesystem error: {e.strerror or str(e)}"))

    except Exception as e:
        logger.exception(f"Unexpected error in command '{command}': {str(e)}")
        return CommandResult.Failure(InternalServerError())
