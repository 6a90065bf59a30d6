"""
FileKeep Server - Permission Database Model

Permission model for RBAC.
Each row is one file manager capability (read, write, delete, ...).
"""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from models.database.base import Base


class Permission(Base):
    """
    Permissions table - stores available capabilities
    """
    __tablename__ = "permissions"

    permission_id = Column(Integer, primary_key=True, autoincrement=True)
    permission_name = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)

    # Relationship to roles through junction table
    roles = relationship("Role", secondary="role_permissions", back_populates="permissions")
