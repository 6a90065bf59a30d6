"""
Tests for loading configuration files
"""

import json
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from managers.config_manager import ConfigManager, DEFAULT_CONFIG


def test_missing_file_is_created_with_defaults(tmp_path):
    config_file = tmp_path / "conf" / "config.json"
    manager = ConfigManager(config_file)

    config = manager.get_file_manager_config()

    assert config_file.exists()
    assert json.loads(config_file.read_text()) == DEFAULT_CONFIG
    assert config.max_file_size == 512 * 1024 ** 2
    assert "php" in config.ban_extensions
    assert config.extension_restrictions["log"]["write"] is False


def test_missing_keys_are_filled_from_defaults(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"root_path": "/srv/files", "max_file_size": "2MB"}))

    config = ConfigManager(config_file).get_file_manager_config()

    assert config.root_path == Path("/srv/files")
    assert config.max_file_size == 2 * 1024 ** 2
    assert config.protected_folders == [".trash", "uploads", "backup"]


def test_environment_variable_selects_file(tmp_path, monkeypatch):
    config_file = tmp_path / "custom.json"
    config_file.write_text(json.dumps({"trash_name": ".bin"}))
    monkeypatch.setenv("FILEKEEP_CONFIG", str(config_file))

    assert ConfigManager().get_file_manager_config().trash_name == ".bin"


def test_invalid_values_are_reported(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"max_file_size": "huge"}))

    with pytest.raises(ValueError):
        ConfigManager(config_file).get_file_manager_config()
