"""
Bradspel Backend — Lend and Return Routes
==========================================

What:  POST /lend/{gameId} and POST /return/{gameId}.
How:   Thin handlers: turn the validated path id and body into a command,
       call LendingService, acknowledge with a message.
Who:   Staff UI (lend), staff and members (return).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from bradspel.database import get_db_session
from bradspel.dependencies import get_current_identity, require_staff
from bradspel.schemas.common import ErrorResponse
from bradspel.schemas.inputs import MAX_ID
from bradspel.schemas.lending import LendRequest, MessageResponse, ReturnRequest
from bradspel.services.auth_service import Identity
from bradspel.services.lending_service import lending_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Lending"])


@router.post(
    "/lend/{game_id}",
    response_model=MessageResponse,
    responses={
        400: {"description": "Invalid or unknown userId", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Staff role required", "model": ErrorResponse},
        404: {"description": "Game not found", "model": ErrorResponse},
        500: {"description": "Database error, nothing was changed", "model": ErrorResponse},
    },
    summary="Lend a game to a user",
)
async def lend_game(
    game_id: int = Path(gt=0, le=MAX_ID, description="Game to lend out"),
    body: LendRequest = Body(...),
    db: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_staff),
) -> MessageResponse:
    command = body.to_command(game_id)
    await lending_service.lend_game(db, command)
    return MessageResponse(message="Game lent out")


@router.post(
    "/return/{game_id}",
    response_model=MessageResponse,
    responses={
        400: {"description": "Invalid game id or notes", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        404: {"description": "Game not found", "model": ErrorResponse},
        500: {"description": "Database error, nothing was changed", "model": ErrorResponse},
    },
    summary="Return a game",
    description=(
        "Marks the game as available and records who returned it. Open party "
        "sessions for the game are closed with the same notes."
    ),
)
async def return_game(
    game_id: int = Path(gt=0, le=MAX_ID, description="Game being returned"),
    body: Optional[ReturnRequest] = None,
    db: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> MessageResponse:
    command = (body or ReturnRequest()).to_command(game_id, identity.user_id)
    await lending_service.return_game(db, command)
    return MessageResponse(message="Game returned")
