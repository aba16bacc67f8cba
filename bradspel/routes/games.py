"""
Bradspel Backend — Catalog Routes
==================================

What:  Catalog reads, bulk import, cover-image upload and stored file serving.
Who:   The public menu (GET routes) and the admin UI (import, image upload).

Caching:
    - /games responses change on every lend, so they are not cached
    - /files/* are immutable (UUID names), so they get a long public max-age
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Path, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from bradspel.database import get_db_session
from bradspel.dependencies import require_staff
from bradspel.schemas.common import ErrorResponse
from bradspel.schemas.games import (
    GameImportItem,
    GameResponse,
    HistoryEntryResponse,
    ImageResponse,
    ImportResponse,
)
from bradspel.schemas.inputs import MAX_ID
from bradspel.services.auth_service import Identity
from bradspel.services.game_service import game_service
from bradspel.services.storage_service import storage_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Games"])


@router.get("/games", response_model=List[GameResponse], summary="List all games")
async def list_games(db: AsyncSession = Depends(get_db_session)) -> List[GameResponse]:
    games = await game_service.list_games(db)
    return [GameResponse.model_validate(game) for game in games]


@router.get(
    "/games/{game_id}",
    response_model=GameResponse,
    responses={404: {"description": "Game not found", "model": ErrorResponse}},
    summary="Get one game",
)
async def get_game(
    game_id: int = Path(gt=0, le=MAX_ID), db: AsyncSession = Depends(get_db_session)
) -> GameResponse:
    game = await game_service.get_game(db, game_id)
    return GameResponse.model_validate(game)


@router.get(
    "/games/{game_id}/history",
    response_model=List[HistoryEntryResponse],
    responses={404: {"description": "Game not found", "model": ErrorResponse}},
    summary="Lend and return history of a game, newest first",
)
async def get_history(
    game_id: int = Path(gt=0, le=MAX_ID), db: AsyncSession = Depends(get_db_session)
) -> List[HistoryEntryResponse]:
    entries = await game_service.get_history(db, game_id)
    return [HistoryEntryResponse.model_validate(entry) for entry in entries]


@router.post(
    "/import",
    response_model=ImportResponse,
    responses={400: {"description": "An item failed validation", "model": ErrorResponse}},
    summary="Bulk import games",
    description="Inserts every item as a new game. One invalid item rejects the whole payload.",
)
async def import_games(
    items: List[GameImportItem],
    db: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_staff),
) -> ImportResponse:
    imported = await game_service.import_games(db, items)
    return ImportResponse(imported=imported)


@router.post(
    "/games/{game_id}/image",
    response_model=ImageResponse,
    responses={
        400: {"description": "Unsupported, empty or oversized image", "model": ErrorResponse},
        404: {"description": "Game not found", "model": ErrorResponse},
    },
    summary="Upload a cover image",
)
async def upload_image(
    game_id: int = Path(gt=0, le=MAX_ID),
    file: UploadFile = File(..., description="PNG, JPEG or WebP image"),
    db: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_staff),
) -> ImageResponse:
    content = await file.read()
    url = await game_service.set_image(
        db,
        game_id,
        content,
        file.filename or "",
        content_length=file.size,
    )
    return ImageResponse(img=url)


@router.get(
    "/files/{file_path:path}",
    responses={
        200: {"description": "Stored image"},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Serve a stored file",
)
async def serve_file(file_path: str) -> FileResponse:
    path = storage_service.resolve(file_path)
    # media type is guessed from the extension
    return FileResponse(
        path=str(path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
