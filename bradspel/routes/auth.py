"""
Bradspel Backend — Auth Routes
===============================

What:  POST /auth/login, /auth/refresh and /auth/logout.
How:   Delegates to AuthService; every successful call returns a fresh
       access/refresh pair except logout.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bradspel.database import get_db_session
from bradspel.schemas.auth import LoginRequest, RefreshRequest, TokenResponse
from bradspel.schemas.common import ErrorResponse
from bradspel.schemas.lending import MessageResponse
from bradspel.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _token_response(access_token: str, refresh_token: str) -> TokenResponse:
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=auth_service.access_ttl_seconds,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in with phone or email and password",
)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db_session)) -> TokenResponse:
    access_token, refresh_token = await auth_service.login(
        db, body.password, phone=body.phone, email=body.email
    )
    return _token_response(access_token, refresh_token)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    responses={401: {"description": "Unknown, revoked or expired token", "model": ErrorResponse}},
    summary="Exchange a refresh token for a new token pair",
)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db_session)) -> TokenResponse:
    access_token, refresh_token = await auth_service.refresh(db, body.refresh_token)
    return _token_response(access_token, refresh_token)


@router.post("/logout", response_model=MessageResponse, summary="Revoke a refresh token")
async def logout(body: RefreshRequest, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await auth_service.logout(db, body.refresh_token)
    return MessageResponse(message="Logged out")
