"""
FileKeep Server - Path Token Codec

This module converts between root-relative filesystem paths and the opaque
tokens clients use to address entries:
- A token is the base64 encoding of a UTF-8, forward-slash path
- The empty token addresses the root
- Decoding never raises; PathGuard decides whether a decoded path is usable
"""

import base64
import binascii
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def NormalizeRelativePath(relative_path: str) -> str:
    """
    Normalize a relative path to its canonical token form

    Backslashes become forward slashes, empty and "." components are
    dropped, so there is never a leading or trailing slash.

    Args:
        relative_path: Path relative to the root (e.g., "docs//report.pdf")

    Returns:
        str: Canonical relative path (e.g., "docs/report.pdf"), "" for the root
    """
    if not relative_path:
        return ""

    parts = relative_path.replace("\\", "/").split("/")
    return "/".join(part for part in parts if part not in ("", "."))


def EncodePathToken(relative_path: str) -> str:
    """
    Encode a relative path into a client-facing token

    Args:
        relative_path: Path relative to the root

    Returns:
        str: base64 token ("" for the root)
    """
    normalized = NormalizeRelativePath(relative_path)
    return base64.b64encode(normalized.encode("utf-8")).decode("ascii")


def DecodePathToken(token: Optional[str]) -> str:
    """
    Decode a client-facing token back into a relative path

    Missing padding is tolerated. A token that is not valid base64 is
    returned unchanged so that PathGuard, not the codec, rejects it.

    Args:
        token: base64 token from the request (may be None or empty)

    Returns:
        str: Decoded relative path, unsanitized
    """
    if not token:
        return ""

    try:
        padded = token + "=" * (-len(token) % 4)
        raw = base64.b64decode(padded)
    except (binascii.Error, ValueError):
        logger.debug(f"Token is not valid base64, passing through: {token!r}")
        return token

    return raw.decode("utf-8", errors="replace")
