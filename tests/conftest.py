"""
Shared fixtures for FileKeep Server tests
"""

import io
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from models.infrastructure import FileManagerConfig, RequestContext, UploadedPart, UserIdentity
from permissions import CAPABILITIES
from plugins import PluginRegistry


@pytest.fixture
def root(tmp_path):
    """Empty file root"""
    path = tmp_path / "files"
    path.mkdir()
    return path.resolve()


@pytest.fixture
def config(tmp_path, root):
    """Configuration with MIME sniffing disabled and a small banned list"""
    return FileManagerConfig(
        root_path=root,
        chunk_path=tmp_path / "chunks",
        database_path=str(tmp_path / "filekeep.db"),
        allowed_mime_types=None,
        ban_extensions=["php", "exe", "sh", "htaccess"],
        extension_restrictions={
            "log": {"read": True, "write": False, "open": False, "delete": False},
            "pdf": {"read": True, "write": False, "open": True, "delete": True}
        }
    )


@pytest.fixture
def identity():
    """User holding every capability and no quota ceiling"""
    return UserIdentity(id=1, username="alice", permissions=list(CAPABILITIES))


@pytest.fixture
def context(identity, config):
    return RequestContext(identity=identity, config=config, plugins=PluginRegistry(), client_address="127.0.0.1")


@pytest.fixture
def make_upload():
    """Factory for in-memory uploaded parts"""
    def _make(filename, data):
        return UploadedPart(filename=filename, stream=io.BytesIO(data))
    return _make
