"""
Tests for quota computation
"""

import shutil
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from models.infrastructure import FileManagerConfig, ParseSize, UNLIMITED_SIZE, UserIdentity
from quota import AdmitsUpload, CalculateUsedSpace, ComputeQuota


def test_parse_size():
    assert ParseSize("5GB") == 5 * 1024 ** 3
    assert ParseSize("0.5GB") == 512 * 1024 ** 2
    assert ParseSize("500MB") == 500 * 1024 ** 2
    assert ParseSize("10k") == 10 * 1024
    assert ParseSize(1234) == 1234
    assert ParseSize("1234") == 1234
    assert ParseSize("-1") == UNLIMITED_SIZE

    with pytest.raises(ValueError):
        ParseSize("lots")


def test_config_accepts_human_sizes():
    config = FileManagerConfig(max_file_size="2MB", memory_limit="-1")
    assert config.max_file_size == 2 * 1024 ** 2
    assert config.memory_limit == UNLIMITED_SIZE


def test_used_space_sums_files_recursively(root):
    (root / "a.bin").write_bytes(b"x" * 100)
    (root / "sub").mkdir()
    (root / "sub" / "b.bin").write_bytes(b"x" * 50)
    (root / "backup").mkdir()
    (root / "backup" / "c.bin").write_bytes(b"x" * 1000)

    assert CalculateUsedSpace(root) == 1150
    assert CalculateUsedSpace(root, [root / "backup"]) == 150


def test_quota_with_ceiling(root):
    config = FileManagerConfig(root_path=root, upload_size_limit=10_000, post_size_limit=20_000)
    identity = UserIdentity(id=1, username="alice", permissions=[], quota=1000)
    (root / "a.bin").write_bytes(b"x" * 400)
    (root / "backup").mkdir()
    (root / "backup" / "big.bin").write_bytes(b"x" * 5000)

    quota = ComputeQuota(identity, root, config)
    assert quota.total == 1000
    assert quota.used == 400
    assert quota.free == 600
    assert quota.max_upload == 600
    assert AdmitsUpload(identity, root, config)


def test_quota_over_ceiling_is_not_floored_until_serialized(root):
    config = FileManagerConfig(root_path=root)
    identity = UserIdentity(id=1, username="alice", permissions=[], quota=100)
    (root / "a.bin").write_bytes(b"x" * 150)

    quota = ComputeQuota(identity, root, config)
    assert quota.free == -50
    assert quota.ToResponse()["free"] == 0
    assert quota.ToResponse()["maxUpload"] == 0
    assert not AdmitsUpload(identity, root, config)


def test_quota_without_ceiling_uses_disk(root):
    config = FileManagerConfig(root_path=root, upload_size_limit=123, post_size_limit=456)
    identity = UserIdentity(id=1, username="alice", permissions=[])

    quota = ComputeQuota(identity, root, config)
    usage = shutil.disk_usage(root)
    assert quota.total == usage.total
    assert quota.used == quota.total - quota.free
    assert quota.max_upload == 123
    assert AdmitsUpload(identity, root, config)
