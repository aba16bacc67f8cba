"""
Bradspel Backend — Catalog Service
===================================

What:  Read access to the game catalog and its lend history, bulk import,
       and cover-image upload.
Who:   routes/games.py.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from bradspel.database import unit_of_work
from bradspel.exceptions import NotFoundError, PersistenceError
from bradspel.models import Game, GameHistoryEntry
from bradspel.schemas.games import GameImportItem
from bradspel.services.storage_service import StorageService, storage_service

logger = logging.getLogger(__name__)


class GameService:
    def __init__(self, storage: Optional[StorageService] = None):
        self._storage = storage or storage_service

    async def list_games(self, db: AsyncSession) -> List[Game]:
        async with unit_of_work(db, "list_games"):
            result = await db.execute(select(Game).order_by(Game.title_sv, Game.id))
            return list(result.scalars().all())

    async def get_game(self, db: AsyncSession, game_id: int) -> Game:
        game = await db.get(Game, game_id)
        if game is None:
            raise NotFoundError(resource="game", resource_id=str(game_id))
        return game

    async def get_history(self, db: AsyncSession, game_id: int) -> List[GameHistoryEntry]:
        """Lend/return rows for a game, newest first."""
        await self.get_game(db, game_id)
        result = await db.execute(
            select(GameHistoryEntry)
            .where(GameHistoryEntry.game_id == game_id)
            .order_by(desc(GameHistoryEntry.timestamp), desc(GameHistoryEntry.id))
        )
        return list(result.scalars().all())

    async def import_games(self, db: AsyncSession, items: Sequence[GameImportItem]) -> int:
        """
        Insert every item as a new game in one transaction.

        Items arrive validated, so a bad row has already rejected the whole
        payload before anything is written.
        """
        values = [item.to_values() for item in items]
        async with unit_of_work(db, "import_games"):
            db.add_all([Game(**row) for row in values])
            await db.flush()
        logger.info("Imported %d games", len(values))
        return len(values)

    async def set_image(
        self,
        db: AsyncSession,
        game_id: int,
        content: bytes,
        filename: str,
        content_length: Optional[int] = None,
    ) -> str:
        """Store a cover image and point games.img at it. Returns the URL."""
        game = await self.get_game(db, game_id)
        url = await self._storage.store(content, filename, content_length)
        try:
            async with unit_of_work(db, "set_game_image"):
                game.img = url
        except PersistenceError:
            await self._storage.cleanup_url(url)
            raise
        logger.info("Game %s image set to %s", game_id, url)
        return url


game_service = GameService()
