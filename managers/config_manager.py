"""
FileKeep Server - Configuration Manager

Handles loading and saving server configuration from/to config.json.
The file location comes from the FILEKEEP_CONFIG environment variable,
falling back to config.json in the working directory.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from models.infrastructure import FileManagerConfig

# Configure logging
logger = logging.getLogger(__name__)


CONFIG_ENV_VAR = "FILEKEEP_CONFIG"

# Default configuration values
DEFAULT_CONFIG = {
    "root_path": "files",
    "root_url": "",
    "trash_name": ".trash",
    "enable_trash": True,
    "chunk_max_age_seconds": 86400,
    "database_path": "database/filekeep.db",
    "max_file_size": "0.5GB",
    "upload_size_limit": "512MB",
    "post_size_limit": "512MB",
    "memory_limit": "-1",
    "read_only_folders": [".trash", "system", "config"],
    "protected_folders": [".trash", "uploads", "backup"],
    "upload_blocked_folders": ["backup"],
    "quota_excluded_folders": ["backup"],
    "allowed_mime_types": ["image/*", "video/*", "audio/*", "text/*", "application/pdf"],
    "ban_extensions": [
        # Unix/Linux executables
        "sh", "bash", "csh", "ksh", "zsh", "tcsh", "dash",
        "pl", "perl", "py", "pyc", "pyo", "pyw", "pyz",
        "rb", "rbw", "cgi", "fcgi",
        # Windows executables
        "exe", "bat", "cmd", "com", "scr", "pif", "cpl",
        "msi", "msp", "dll", "ocx", "sys",
        # Web server scripts
        "php", "php3", "php4", "php5", "phtml", "php7",
        "asp", "aspx", "asa", "ashx",
        "jsp", "jspx", "jsw", "jssp", "do",
        "cfm", "cfml", "cfc",
        # Script hosts
        "js", "vbs", "vbe", "jse", "wsf", "wsh", "ps1", "psm1",
        # macOS packages
        "app", "dmg", "pkg", "mpkg",
        # Server configuration
        "conf", "cnf", "ini", "cfg", "config",
        "htaccess", "htpasswd", "htgroup",
        # Office macros
        "docm", "xlsm", "pptm", "dotm", "xltm"
    ],
    "extension_restrictions": {
        "log": {"read": True, "write": False, "open": False, "delete": False},
        "txt": {"read": True, "write": True, "open": True, "delete": True},
        "pdf": {"read": True, "write": False, "open": True, "delete": True}
    },
    "default_extension_permissions": {"read": True, "write": True, "open": True, "delete": True},
    "disabled_operations": [],
    "enabled_plugins": []
}


class ConfigManager:
    """
    Manages server configuration.

    Responsibilities:
    - Load/save config.json (created with defaults on first start)
    - Fill in defaults for keys missing from an existing file
    - Validate the result into a FileManagerConfig
    """

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit path; otherwise FILEKEEP_CONFIG or ./config.json
        """
        if config_file is None:
            config_file = os.environ.get(CONFIG_ENV_VAR) or Path.cwd() / "config.json"

        self.config_file = Path(config_file)
        self.config: Dict[str, Any] = {}

    def load_config(self) -> Dict[str, Any]:
        """
        Load configuration from config.json.
        Creates default config if file doesn't exist.

        Returns:
            Configuration dictionary
        """
        if self.config_file.exists():
            logger.debug(f"Loading configuration from {self.config_file}")
            with open(self.config_file, 'r') as f:
                self.config = json.load(f)
            # Merge with defaults for any missing keys
            for key, value in DEFAULT_CONFIG.items():
                if key not in self.config:
                    self.config[key] = value
            logger.info("Configuration loaded successfully")
        else:
            logger.info(f"Configuration file not found, creating default at {self.config_file}")
            self.config = json.loads(json.dumps(DEFAULT_CONFIG))
            self.save_config()

        return self.config

    def save_config(self):
        """Save current configuration to config.json."""
        logger.debug(f"Saving configuration to {self.config_file}")
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w') as f:
            json.dump(self.config, f, indent=2)

    def get(self, key: str, default=None) -> Any:
        return self.config.get(key, default)

    def set(self, key: str, value: Any):
        """
        Set configuration value and save to file.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self.config[key] = value
        self.save_config()

    def get_file_manager_config(self) -> FileManagerConfig:
        """
        Validate the loaded configuration.

        Returns:
            FileManagerConfig: Typed configuration

        Raises:
            ValueError: If a value fails validation
        """
        if not self.config:
            self.load_config()

        try:
            return FileManagerConfig(**self.config)
        except ValidationError as e:
            logger.error(f"Invalid configuration in {self.config_file}: {str(e)}")
            raise ValueError(f"Invalid configuration: {str(e)}")
