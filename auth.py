"""
FileKeep Server - Authentication Utilities

This module provides authentication functionality including:
- JWT token generation and validation
- Authentication dependencies for protected routes
- Resolution of the authenticated user into the identity used by the
  command engine (capabilities and quota ceiling)

Passwords are hashed with bcrypt in managers/database_manager.py.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from models.database import User
from models.auth import TokenData
from models.infrastructure import UserIdentity
from managers.database_manager import DatabaseManager

# JWT Configuration
# A fresh key per process; tokens do not survive a restart
SECRET_KEY = secrets.token_urlsafe(32)
ALGORITHM = "HS256"
DEFAULT_EXPIRATION_HOURS = 24

# Security scheme for FastAPI
security = HTTPBearer()


# ==================== JWT Token Functions ====================

def GetExpirationHours(db_manager: DatabaseManager) -> int:
    """Token lifetime from the jwt_expiration_hours setting"""
    session = db_manager.GetSession()
    try:
        value = db_manager.GetSettingValue(session, "jwt_expiration_hours")
        return int(value) if value else DEFAULT_EXPIRATION_HOURS
    finally:
        session.close()


def CreateAccessToken(data: dict, db_manager: DatabaseManager, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token

    Args:
        data: Dictionary containing user data (user_id, username)
        db_manager: DatabaseManager instance to get JWT expiration setting
        expires_delta: Optional custom expiration time

    Returns:
        str: Encoded JWT token
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(hours=GetExpirationHours(db_manager))

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def DecodeAccessToken(token: str) -> TokenData:
    """
    Decode and validate a JWT access token

    Args:
        token: JWT token string

    Returns:
        TokenData: Token data if valid

    Raises:
        HTTPException: If token is invalid or expired
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: int = payload.get("user_id")
        username: str = payload.get("username")

        if user_id is None or username is None:
            raise credentials_exception

        return TokenData(user_id=user_id, username=username)

    except JWTError:
        raise credentials_exception


# ==================== Authentication Dependencies ====================

def GetCurrentIdentity(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> UserIdentity:
    """
    FastAPI dependency resolving the bearer token into a UserIdentity

    Capabilities and quota are read from the database on every request,
    so role changes apply without a new login.

    Args:
        credentials: HTTP Bearer token from Authorization header

    Returns:
        UserIdentity: Identity handed to the command engine

    Raises:
        HTTPException: If authentication fails
    """
    token_data = DecodeAccessToken(credentials.credentials)

    from database import db_manager

    session = db_manager.GetSession()
    try:
        user = session.query(User).filter(User.user_id == token_data.user_id).first()

        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User account is disabled",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return db_manager.GetUserIdentity(session, user)

    finally:
        session.close()


# ==================== Authentication Helper Functions ====================

def AuthenticateUser(db_manager: DatabaseManager, username: str, password: str) -> Optional[dict]:
    """
    Authenticate a user with username and password

    Args:
        db_manager: DatabaseManager instance
        username: Username
        password: Plain text password

    Returns:
        dict: user_id and username if authentication succeeded, None otherwise
    """
    session = db_manager.GetSession()

    try:
        user = session.query(User).filter(User.username == username).first()

        if not user or not user.is_active:
            return None

        if not db_manager.VerifyPassword(password, user.password_hash):
            return None

        user.last_login = datetime.now(timezone.utc)
        session.commit()

        # Plain dict to avoid SQLAlchemy session issues
        return {
            'user_id': user.user_id,
            'username': user.username
        }

    finally:
        session.close()
