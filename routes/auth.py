"""
FileKeep Server - Authentication Endpoints

This module contains the login endpoint issuing JWT bearer tokens.
"""

import logging
from fastapi import APIRouter, HTTPException, status

from models.auth import LoginRequest, LoginResponse
from auth import AuthenticateUser, CreateAccessToken, GetExpirationHours


# Create logger
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter()


# ==================== Authentication Endpoints ====================

@router.post("/auth/login", response_model=LoginResponse, tags=["Authentication"])
async def login(login_request: LoginRequest):
    """
    Authenticate user and return JWT token

    Args:
        login_request: Username and password

    Returns:
        LoginResponse: JWT token and expiration time

    Raises:
        HTTPException: If credentials are invalid
    """
    from database import db_manager

    user_data = AuthenticateUser(db_manager, login_request.username, login_request.password)

    if not user_data:
        logger.warning(f"Failed login attempt for user '{login_request.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    expiration_hours = GetExpirationHours(db_manager)
    access_token = CreateAccessToken(
        {"user_id": user_data['user_id'], "username": user_data['username']},
        db_manager
    )

    logger.info(f"User '{user_data['username']}' logged in successfully")

    return LoginResponse(
        token=access_token,
        expires_in=expiration_hours * 3600
    )
