"""
FileKeep Server - Managers Package

This package contains manager classes for the database and configuration.
"""

from managers.database_manager import DatabaseManager
from managers.config_manager import ConfigManager

__all__ = ['DatabaseManager', 'ConfigManager']
