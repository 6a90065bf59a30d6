"""
Tests for path resolution and containment checks
"""

import base64
import os
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from exceptions import PathTraversalError
from path_guard import (
    EnsureWithinRoot, IsPathSafe, ResolvePath, SanitizeFilename, ToRelativePath, ToToken
)
from token_codec import EncodePathToken


def RawToken(path: str) -> str:
    """Token built without normalization, as a hostile client would"""
    return base64.b64encode(path.encode("utf-8")).decode("ascii")


def test_is_path_safe():
    assert IsPathSafe("docs/report.pdf")
    assert not IsPathSafe("../etc/passwd")
    assert not IsPathSafe("docs/../../x")
    assert not IsPathSafe("docs/\0evil")


def test_empty_token_resolves_to_root(root):
    assert ResolvePath("", root) == root
    assert ResolvePath(None, root) == root


def test_resolves_existing_and_new_paths(root):
    (root / "docs").mkdir()
    (root / "docs" / "a.txt").write_text("x")

    assert ResolvePath(EncodePathToken("docs/a.txt"), root) == root / "docs" / "a.txt"
    # Non-existent tail is joined lexically
    assert ResolvePath(EncodePathToken("docs/new/b.txt"), root) == root / "docs" / "new" / "b.txt"


@pytest.mark.parametrize("path", ["../outside", "docs/../../outside", "..", "a/\0b"])
def test_traversal_is_rejected(root, path):
    with pytest.raises(PathTraversalError) as exc_info:
        ResolvePath(RawToken(path), root)
    assert exc_info.value.code == 403


def test_absolute_path_stays_inside_root(root):
    """A leading slash is relative to root, not to the host filesystem"""
    assert ResolvePath(RawToken("/etc/passwd"), root) == root / "etc" / "passwd"


def test_symlink_escaping_root_is_rejected(tmp_path, root):
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("secret")
    os.symlink(outside, root / "link")

    with pytest.raises(PathTraversalError):
        ResolvePath(EncodePathToken("link/secret.txt"), root)


def test_symlink_inside_root_is_followed(root):
    (root / "real").mkdir()
    os.symlink(root / "real", root / "alias")

    assert ResolvePath(EncodePathToken("alias"), root) == root / "real"


def test_ensure_within_root(tmp_path, root):
    inside = root / "a.txt"
    inside.write_text("x")
    assert EnsureWithinRoot(inside, root) == inside

    outside = tmp_path / "b.txt"
    outside.write_text("x")
    with pytest.raises(PathTraversalError):
        EnsureWithinRoot(outside, root)


def test_relative_paths_and_tokens(root):
    assert ToRelativePath(root, root) == ""
    assert ToRelativePath(root / "docs" / "a.txt", root) == "docs/a.txt"
    assert ToToken(root / "docs" / "a.txt", root) == EncodePathToken("docs/a.txt")


def test_sanitize_filename():
    assert SanitizeFilename("re/po\\rt.pdf") == "report.pdf"
    assert SanitizeFilename("report..pdf") == "reportpdf"
    assert SanitizeFilename("a\x00b\x1fc") == "abc"
    assert SanitizeFilename("..") == ""
    assert len(SanitizeFilename("x" * 300)) == 255
