"""
FileKeep Server - Database Models Package

This package contains the SQLAlchemy models backing the identity provider.
All models share a common declarative base for proper table relationships.
"""

# Import Base first
from models.database.base import Base

# Import all models
from models.database.role import Role
from models.database.permission import Permission
from models.database.role_permission import RolePermission
from models.database.user import User
from models.database.setting import Setting

# Export all models and Base
__all__ = [
    'Base',
    'Role',
    'Permission',
    'RolePermission',
    'User',
    'Setting',
]
