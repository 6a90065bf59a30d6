"""
FileKeep Server - User Database Model

User model for authentication and authorization.
Stores credentials, role assignment and the per-user storage ceiling.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from models.database.base import Base


class User(Base):
    """
    Users table - stores user credentials and authentication info
    """
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role_id = Column(Integer, ForeignKey("roles.role_id"), nullable=True)
    quota_bytes = Column(BigInteger, nullable=False, default=0)  # 0 = host disk decides
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    last_login = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True)

    # Relationship to role
    role = relationship("Role", back_populates="users")
