"""
FileKeep Server - Chunked Upload Handler

This module receives uploaded bodies and turns them into files under root:
- Single-part uploads are written directly
- Multi-part uploads are buffered per upload id in a temporary directory
  and merged in index order once every part is present
- Filenames are sanitized and checked against the banned-extension list
- Merged files are sniffed by content and checked against allowed MIME types
- Abandoned chunk directories are removed by an age-based janitor
"""

import hashlib
import logging
import os
import re
import shutil
import time
import uuid
from pathlib import Path
from typing import BinaryIO, Optional, Tuple

from exceptions import (
    BannedExtensionError, ChunkWriteFailedError, FileTooLargeError,
    InvalidRequestError, MimeTypeRejectedError, MissingChunkError,
    PathTraversalError
)
from models.infrastructure import ChunkSession, FileManagerConfig, UploadProgress
from path_guard import EnsureWithinRoot, MAX_FILENAME_LENGTH
from permissions import GetExtension, IsBannedExtension

logger = logging.getLogger(__name__)


CHUNK_FILE_PREFIX = "chunk_"
COPY_BUFFER_SIZE = 1024 * 1024
FILE_MODE = 0o640
DIRECTORY_MODE = 0o750

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


# ==================== Filenames ====================

def SanitizeUploadFilename(raw_filename: str) -> str:
    """
    Sanitize a client-supplied upload filename

    The extension after the last dot is kept as sent. Only the stem is
    cleaned: quotes removed, runs of non-word characters replaced by "_",
    repeated "_" collapsed and leading/trailing "_" trimmed.

    Args:
        raw_filename: Filename from the multipart body (may include a path)

    Returns:
        str: Sanitized filename, "file" if nothing usable remains of the stem
    """
    name = (raw_filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _CONTROL_CHARS.sub("", name)

    if "." in name:
        stem, extension = name.rsplit(".", 1)
    else:
        stem, extension = name, ""

    stem = re.sub(r"[\"'`]", "", stem)
    stem = re.sub(r"\W+", "_", stem)
    stem = re.sub(r"_+", "_", stem).strip("_") or "file"

    if extension:
        stem = stem[:max(1, MAX_FILENAME_LENGTH - len(extension) - 1)]
        return f"{stem}.{extension}"
    return stem[:MAX_FILENAME_LENGTH]


def GetUniqueFilename(directory: Path, filename: str) -> str:
    """
    Return filename, or name_1.ext, name_2.ext, ... if it is taken

    Args:
        directory: Target directory
        filename: Desired filename

    Returns:
        str: A name that does not exist in directory
    """
    if not os.path.lexists(directory / filename):
        return filename

    stem, dot, extension = filename.rpartition(".")
    if not stem:
        stem, suffix = filename, ""
    else:
        suffix = dot + extension

    counter = 1
    while True:
        candidate = f"{stem}_{counter}{suffix}"
        if not os.path.lexists(directory / candidate):
            return candidate
        counter += 1


def OpenUniqueDestination(directory: Path, filename: str) -> Tuple[Path, BinaryIO]:
    """
    Create and open a new destination file for exclusive writing

    Retries with the next unique name if another request wins the race.
    """
    while True:
        destination = directory / GetUniqueFilename(directory, filename)
        try:
            return destination, open(destination, "xb")
        except FileExistsError:
            continue


# ==================== MIME Validation ====================

def IsAllowedMimeType(mime: str, allowed_patterns) -> bool:
    """
    Match a MIME type against patterns such as "image/*" (case-insensitive)

    Args:
        mime: Detected MIME type
        allowed_patterns: Patterns where "*" matches any run of characters

    Returns:
        bool: True if any pattern matches the whole MIME type
    """
    for pattern in allowed_patterns:
        regex = ".*".join(re.escape(part) for part in pattern.split("*"))
        if re.fullmatch(regex, mime or "", re.IGNORECASE):
            return True
    return False


def DetectMimeType(path: Path) -> str:
    """Sniff the MIME type of a file from its content with libmagic"""
    import magic

    return magic.from_file(str(path), mime=True)


def ValidateMimeType(path: Path, config: FileManagerConfig) -> Optional[str]:
    """
    Sniff a stored file and delete it if its MIME type is not allowed

    Returns:
        str: Detected MIME type, or None when MIME checking is disabled

    Raises:
        MimeTypeRejectedError: If the type fails every allowed pattern
    """
    if config.allowed_mime_types is None:
        return None

    mime = DetectMimeType(path)
    if not IsAllowedMimeType(mime, config.allowed_mime_types):
        path.unlink(missing_ok=True)
        logger.warning(f"Rejected upload {path.name}: MIME type {mime} not allowed")
        raise MimeTypeRejectedError(f"MIME type not allowed: {mime}")

    return mime


def FinalizeUploadedFile(path: Path, config: FileManagerConfig, root_path: Path) -> Path:
    """
    Re-check containment, validate the MIME type and set file permissions

    Returns:
        Path: Canonical path of the stored file
    """
    try:
        resolved = EnsureWithinRoot(path, root_path)
    except PathTraversalError:
        path.unlink(missing_ok=True)
        raise

    ValidateMimeType(resolved, config)
    os.chmod(resolved, FILE_MODE)
    return resolved


# ==================== Streams ====================

def GetStreamSize(stream: BinaryIO) -> int:
    """Size of a seekable stream; leaves the position at the start"""
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def WriteSingleUpload(source: BinaryIO, target_dir: Path, filename: str,
                      config: FileManagerConfig, root_path: Path) -> Path:
    """
    Write a one-part upload straight to its destination

    Raises:
        ChunkWriteFailedError: If the file cannot be written
        MimeTypeRejectedError: If the stored content fails MIME validation
    """
    destination, handle = OpenUniqueDestination(target_dir, filename)

    try:
        with handle:
            shutil.copyfileobj(source, handle, COPY_BUFFER_SIZE)
    except OSError as e:
        destination.unlink(missing_ok=True)
        logger.error(f"Failed to save upload {destination}: {str(e)}")
        raise ChunkWriteFailedError("Failed to save file")

    return FinalizeUploadedFile(destination, config, root_path)


# ==================== Chunk Sessions ====================

def GetSessionPath(chunk_root: Path, owner_id, upload_id: str) -> Path:
    """
    Directory holding the parts of one upload

    The directory name is a SHA-256 of owner and upload id, so a
    client-chosen id never becomes part of a path and users cannot
    collide with each other's sessions.
    """
    digest = hashlib.sha256(f"{owner_id}:{upload_id}".encode("utf-8")).hexdigest()
    return Path(chunk_root) / digest


def GetPartPath(session_path: Path, part_index: int) -> Path:
    return session_path / f"{CHUNK_FILE_PREFIX}{part_index}"


def WritePart(session_path: Path, part_index: int, source: BinaryIO) -> Path:
    """
    Persist one part, replacing any earlier copy of the same index

    The part is written to a temporary file first and moved into place,
    so a re-delivered part overwrites instead of duplicating.

    Raises:
        ChunkWriteFailedError: If the part cannot be written
    """
    part_path = GetPartPath(session_path, part_index)
    temp_path = session_path / f".{CHUNK_FILE_PREFIX}{part_index}.{uuid.uuid4().hex}.tmp"

    try:
        session_path.mkdir(parents=True, exist_ok=True, mode=DIRECTORY_MODE)
        with open(temp_path, "wb") as f:
            shutil.copyfileobj(source, f, COPY_BUFFER_SIZE)
        os.replace(temp_path, part_path)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        logger.error(f"Failed to save chunk {part_index} in {session_path}: {str(e)}")
        raise ChunkWriteFailedError(f"Failed to save chunk {part_index}")

    return part_path


def LoadChunkSession(upload_id: str, total_parts: int, target_filename: str,
                     target_directory: Path, session_path: Path) -> ChunkSession:
    """
    Rebuild a chunk session from the part files present on disk

    Only indices 0..total_parts-1 count towards completion.
    """
    session = ChunkSession(
        upload_id=upload_id,
        total_parts=total_parts,
        target_filename=target_filename,
        target_directory=target_directory,
        session_path=session_path
    )

    for part_path in session_path.glob(f"{CHUNK_FILE_PREFIX}*"):
        index_text = part_path.name[len(CHUNK_FILE_PREFIX):]
        if index_text.isdigit() and int(index_text) < total_parts:
            session.parts_received.add(int(index_text))

    return session


def MergeChunks(session: ChunkSession, config: FileManagerConfig, root_path: Path) -> Path:
    """
    Concatenate all parts in index order into the final file

    On success the chunk directory is removed. If any index is missing the
    partial destination is deleted and the chunks stay for a later retry
    or the janitor.

    Args:
        session: Complete chunk session
        config: File manager configuration
        root_path: Root directory

    Returns:
        Path: Path of the merged file

    Raises:
        BannedExtensionError: If the target name has a banned extension
        FileTooLargeError: If the parts add up to more than max_file_size
        MissingChunkError: If an index is absent at merge time
        ChunkWriteFailedError: If the destination cannot be written
        MimeTypeRejectedError: If the merged content fails MIME validation
    """
    if IsBannedExtension(session.target_filename, config):
        raise BannedExtensionError(f"File type not allowed: {GetExtension(session.target_filename)}")

    total_size = 0
    for index in session.parts_received:
        part_path = GetPartPath(session.session_path, index)
        if part_path.exists():
            total_size += part_path.stat().st_size
    if total_size > config.max_file_size:
        raise FileTooLargeError()

    destination, handle = OpenUniqueDestination(session.target_directory, session.target_filename)

    try:
        with handle:
            for index in range(session.total_parts):
                part_path = GetPartPath(session.session_path, index)
                try:
                    with open(part_path, "rb") as part:
                        shutil.copyfileobj(part, handle, COPY_BUFFER_SIZE)
                except FileNotFoundError:
                    raise MissingChunkError(f"Missing chunk {index}")
    except MissingChunkError:
        destination.unlink(missing_ok=True)
        logger.error(f"Merge of upload '{session.upload_id}' failed: missing chunk")
        raise
    except OSError as e:
        destination.unlink(missing_ok=True)
        logger.error(f"Failed to create final file {destination}: {str(e)}")
        raise ChunkWriteFailedError("Failed to create final file")

    final_path = FinalizeUploadedFile(destination, config, root_path)
    CleanupChunks(session.session_path)

    logger.info(
        f"Merged {session.total_parts} chunks of upload '{session.upload_id}' into {final_path.name} "
        f"({final_path.stat().st_size} bytes)"
    )
    return final_path


# ==================== Upload Entry Point ====================

def ReceivePart(upload_id: str, part_index: int, total_parts: int, source: BinaryIO,
                target_dir: Path, raw_filename: str, config: FileManagerConfig,
                chunk_root: Path, root_path: Path, owner_id="") -> UploadProgress:
    """
    Receive one part of an upload and merge when the upload is complete

    Args:
        upload_id: Client-supplied session id shared by all parts
        part_index: 0-based index of this part
        total_parts: Number of parts in the upload
        source: Seekable stream with this part's bytes
        target_dir: Guard-approved destination directory
        raw_filename: Client-supplied filename
        config: File manager configuration
        chunk_root: Directory holding chunk sessions
        root_path: Root directory
        owner_id: Id of the uploading user

    Returns:
        UploadProgress: completed flag, counters and the final path once merged

    Raises:
        InvalidRequestError: If the part numbering is inconsistent
        BannedExtensionError: If the sanitized name has a banned extension
        FileTooLargeError: If the part exceeds max_file_size
    """
    if total_parts < 1 or not 0 <= part_index < total_parts:
        raise InvalidRequestError(f"Invalid chunk {part_index} of {total_parts}")

    filename = SanitizeUploadFilename(raw_filename)
    if IsBannedExtension(filename, config):
        logger.warning(f"Rejected upload with banned extension: {raw_filename!r}")
        raise BannedExtensionError(f"File type not allowed: {GetExtension(filename)}")

    if GetStreamSize(source) > config.max_file_size:
        raise FileTooLargeError()

    if total_parts == 1:
        final_path = WriteSingleUpload(source, target_dir, filename, config, root_path)
        return UploadProgress(completed=True, received=1, total=1, final_path=final_path)

    if not upload_id:
        raise InvalidRequestError("Upload id is required for chunked uploads")

    session_path = GetSessionPath(chunk_root, owner_id, upload_id)
    WritePart(session_path, part_index, source)

    session = LoadChunkSession(upload_id, total_parts, filename, target_dir, session_path)
    if not session.IsComplete():
        logger.debug(f"Upload '{upload_id}': {session.ReceivedCount()}/{total_parts} chunks received")
        return UploadProgress(completed=False, received=session.ReceivedCount(), total=total_parts)

    final_path = MergeChunks(session, config, root_path)
    return UploadProgress(completed=True, received=total_parts, total=total_parts, final_path=final_path)


# ==================== Cleanup ====================

def CleanupChunks(session_path: Path) -> None:
    """Remove one chunk session directory"""
    if not session_path.is_dir():
        return

    try:
        shutil.rmtree(session_path)
    except OSError as e:
        logger.error(f"Failed to remove chunk directory {session_path}: {str(e)}")


def CleanupOldChunks(chunk_root: Path, max_age_seconds: int = 86400) -> int:
    """
    Remove chunk sessions untouched for longer than max_age_seconds

    Args:
        chunk_root: Directory holding chunk sessions
        max_age_seconds: Age threshold (default 24 hours)

    Returns:
        int: Number of sessions removed
    """
    chunk_root = Path(chunk_root)
    if not chunk_root.is_dir():
        return 0

    now = time.time()
    removed = 0

    for session_path in chunk_root.iterdir():
        if not session_path.is_dir():
            continue
        try:
            age = now - session_path.stat().st_mtime
        except OSError:
            continue
        if age > max_age_seconds:
            CleanupChunks(session_path)
            removed += 1

    if removed:
        logger.info(f"Removed {removed} abandoned chunk session(s) from {chunk_root}")

    return removed
