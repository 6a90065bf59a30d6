"""
Tests for soft delete, restore and emptying the trash
"""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from exceptions import AlreadyExistsError, NotFoundError
from token_codec import EncodePathToken
from trash import EmptyTrash, IsInsideTrash, RestoreEntries, RestoreFromTrash, SoftDelete


@pytest.fixture
def trash(root):
    path = root / ".trash"
    path.mkdir()
    return path


def test_soft_delete_then_restore(root, trash):
    (root / "docs").mkdir()
    (root / "docs" / "a.txt").write_text("hello")

    trashed = SoftDelete(root / "docs" / "a.txt", trash, root)
    assert trashed == trash / "docs" / "a.txt"
    assert not (root / "docs" / "a.txt").exists()
    assert IsInsideTrash(trashed, trash)

    restored = RestoreFromTrash(EncodePathToken(".trash/docs/a.txt"), trash, root)
    assert restored == root / "docs" / "a.txt"
    assert restored.read_text() == "hello"
    assert not trashed.exists()


def test_restore_recreates_missing_parents(root, trash):
    (root / "deep" / "er").mkdir(parents=True)
    (root / "deep" / "er" / "x.txt").write_text("x")

    SoftDelete(root / "deep" / "er" / "x.txt", trash, root)
    SoftDelete(root / "deep", trash, root)

    restored = RestoreFromTrash(EncodePathToken(".trash/deep/er/x.txt"), trash, root)
    assert restored.read_text() == "x"


def test_second_delete_is_permanent(root, trash):
    (root / "a.txt").write_text("x")

    trashed = SoftDelete(root / "a.txt", trash, root)
    SoftDelete(trashed, trash, root)
    assert not trashed.exists()

    with pytest.raises(NotFoundError):
        RestoreFromTrash(EncodePathToken(".trash/a.txt"), trash, root)


def test_trash_name_collisions_keep_both(root, trash):
    (root / "a.txt").write_text("first")
    SoftDelete(root / "a.txt", trash, root)
    (root / "a.txt").write_text("second")
    second = SoftDelete(root / "a.txt", trash, root)

    assert second.name == "a_1.txt"
    assert (trash / "a.txt").read_text() == "first"
    assert (trash / "a_1.txt").read_text() == "second"


def test_restore_refuses_to_overwrite(root, trash):
    (root / "a.txt").write_text("old")
    SoftDelete(root / "a.txt", trash, root)
    (root / "a.txt").write_text("new")

    with pytest.raises(AlreadyExistsError) as exc_info:
        RestoreFromTrash(EncodePathToken(".trash/a.txt"), trash, root)

    assert exc_info.value.code == 409
    assert (root / "a.txt").read_text() == "new"


def test_restore_requires_trash_location(root, trash):
    (root / "a.txt").write_text("x")
    with pytest.raises(NotFoundError):
        RestoreFromTrash(EncodePathToken("a.txt"), trash, root)


def test_batch_restore_collects_errors(root, trash):
    (root / "a.txt").write_text("a")
    (root / "b.txt").write_text("b")
    SoftDelete(root / "a.txt", trash, root)
    SoftDelete(root / "b.txt", trash, root)
    (root / "b.txt").write_text("occupied")

    restored, errors = RestoreEntries(
        [EncodePathToken(".trash/a.txt"), EncodePathToken(".trash/b.txt"), EncodePathToken(".trash/c.txt")],
        trash, root
    )

    assert restored == [root / "a.txt"]
    assert len(errors) == 2
    assert errors[0].startswith("b.txt:")


def test_empty_trash(root, trash):
    (root / "a.txt").write_text("a")
    (root / "dir").mkdir()
    (root / "dir" / "b.txt").write_text("b")
    SoftDelete(root / "a.txt", trash, root)
    SoftDelete(root / "dir", trash, root)

    removed = EmptyTrash(trash, root)

    assert sorted(removed) == [".trash/a.txt", ".trash/dir"]
    assert trash.exists()
    assert list(trash.iterdir()) == []


def test_batch_restore_survives_filesystem_errors(root, trash):
    (root / "b.txt").write_text("b")
    (root / "docs").mkdir()
    (root / "docs" / "a.txt").write_text("a")
    SoftDelete(root / "b.txt", trash, root)
    SoftDelete(root / "docs" / "a.txt", trash, root)
    (root / "docs").rmdir()
    (root / "docs").write_text("a file where a folder was")

    restored, errors = RestoreEntries(
        [EncodePathToken(".trash/b.txt"), EncodePathToken(".trash/docs/a.txt")], trash, root
    )

    assert restored == [root / "b.txt"]
    assert len(errors) == 1
    assert errors[0].startswith("a.txt:")
    assert (trash / "docs" / "a.txt").exists()


def test_soft_delete_when_trash_holds_a_file_of_the_parent_name(root, trash):
    (root / "docs").write_text("plain file")
    SoftDelete(root / "docs", trash, root)
    (root / "docs").mkdir()
    (root / "docs" / "a.txt").write_text("a")

    trashed = SoftDelete(root / "docs" / "a.txt", trash, root)

    assert trashed == trash / "docs_1" / "a.txt"
    assert (trash / "docs").read_text() == "plain file"
    assert trashed.read_text() == "a"

    # Later deletes from the same folder reuse the renamed directory
    (root / "docs" / "b.txt").write_text("b")
    assert SoftDelete(root / "docs" / "b.txt", trash, root) == trash / "docs_1" / "b.txt"
