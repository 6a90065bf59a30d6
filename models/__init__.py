"""
FileKeep Server - Models Package

This package contains all data models for the FileKeep server:
- database: SQLAlchemy models for users, roles and settings
- auth: Authentication-related Pydantic models
- api: Pydantic models serialized into connector responses
- infrastructure: Dataclass models passed between engine components
"""

# Re-export all models for convenient importing
from models.database import *
from models.auth import *
from models.api import *
from models.infrastructure import *
