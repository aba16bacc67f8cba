"""
Bradspel Backend — Lending Workflow
====================================

What:  The only stateful business logic in the system: a game's lend state
       (AVAILABLE ⇄ LENT), kept consistent across `games`, `game_history`
       and `game_orders`.
How:   Every public operation is one unit of work (database.unit_of_work):
       all statements commit together or none do. The first-borrow badge is
       awarded afterwards in its own transaction, so a badge failure never
       undoes a lend.
Who:   routes/lending.py and routes/orders.py.

Workflow (order completion):
    ┌───────────┐   ┌───────────────┐   ┌──────────────┐   ┌────────────┐
    │ load order│──▶│ resolve guest │──▶│  apply lend  │──▶│delete order│
    │  (404)    │   │ by phone (400)│   │ game+history │   │            │
    └───────────┘   └───────────────┘   └──────────────┘   └────────────┘
                          one transaction ─────────────────────────────▶ commit
                                                                         │
                                                     award first-borrow ◀┘ (best-effort)

Invariants kept by this module:
    - games.times_lent == number of 'lend' rows in game_history for the game
    - games.lent_out reflects the most recent history row for the game
    - an order is consumed at most once (deleted in the completing transaction)
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bradspel.database import unit_of_work
from bradspel.exceptions import NotFoundError, ValidationError
from bradspel.models import LEND, RETURN, Game, GameHistoryEntry, GameOrder, PartySession
from bradspel.models.game import utcnow
from bradspel.schemas.lending import LendCommand, OrderCommand, ReturnCommand
from bradspel.services.badge_service import FIRST_BORROW, BadgeService, badge_service
from bradspel.services.user_service import UserService, user_service

logger = logging.getLogger(__name__)


class LendingService:
    """
    Lend, return, and table-order handling.

    Responsibilities:
        - lend_game():      staff lends a game to a known user
        - return_game():    a game comes back; open party sessions are closed
        - place_order():    a guest at a table asks for a game (no auth)
        - complete_order(): staff hands the game over; the order becomes a lend
        - cancel_order() / list_orders(): order housekeeping
    """

    def __init__(
        self,
        users: Optional[UserService] = None,
        badges: Optional[BadgeService] = None,
    ):
        self._users = users or user_service
        self._badges = badges or badge_service

    # ── Public operations ─────────────────────────────────────────────────

    async def lend_game(self, db: AsyncSession, command: LendCommand) -> None:
        """
        Mark a game as lent to `command.user_id` and record the lend.

        Raises:
            NotFoundError:    the game does not exist
            ValidationError:  the user does not exist
            PersistenceError: any statement failed (nothing was written)
        """
        async with unit_of_work(db, "lend_game"):
            game = await self._load_game(db, command.game_id)
            user = await self._users.get_user(db, command.user_id)
            if user is None:
                raise ValidationError(
                    message=f"User {command.user_id} does not exist",
                    field="userId",
                )
            await self._apply_lend(db, game, user.id, command.note)

        logger.info("Game %s lent to user %s", command.game_id, command.user_id)
        await self._award_first_borrow(db, command.user_id)

    async def return_game(self, db: AsyncSession, command: ReturnCommand) -> int:
        """
        Mark a game as available and record the return.

        A game that is not lent out is still accepted and gets a second
        return row. Open party sessions for the game are stamped with the
        return.

        Returns:
            Number of party sessions closed by this return.
        """
        async with unit_of_work(db, "return_game"):
            game = await self._load_game(db, command.game_id)
            if not game.lent_out:
                logger.warning("Game %s returned while not lent out", game.id)

            now = utcnow()
            game.lent_out = False
            await db.flush()

            await self._record_history(
                db,
                game_id=game.id,
                user_id=command.returning_user_id,
                action=RETURN,
                note=command.return_notes,
                timestamp=now,
                returned_at=now,
            )
            closed = await self._close_party_sessions(
                db, game.id, command.returning_user_id, command.return_notes, now
            )

        logger.info(
            "Game %s returned by user %s (%d party session(s) closed)",
            command.game_id,
            command.returning_user_id,
            closed,
        )
        return closed

    async def place_order(self, db: AsyncSession, command: OrderCommand) -> int:
        """
        Store a pending order. Several orders for the same game or table may
        coexist.

        Returns:
            The new order id.
        """
        async with unit_of_work(db, "place_order"):
            await self._load_game(db, command.game_id, lock=False)
            order = GameOrder(
                game_id=command.game_id,
                table_id=command.table_id,
                first_name=command.first_name,
                last_name=command.last_name,
                phone=command.phone,
            )
            db.add(order)
            await db.flush()

        logger.info("Order %s placed for game %s at table %s", order.id, order.game_id, order.table_id)
        return order.id

    async def complete_order(self, db: AsyncSession, order_id: int) -> int:
        """
        Turn a pending order into a lend.

        Steps, in one transaction:
            1. Load the order (NotFoundError, nothing changes)
            2. Resolve the customer by digits-only phone, or create a guest
               (ValidationError if a name or the phone is empty)
            3. Apply the lend with a note naming the table
            4. Delete the order

        Returns:
            Id of the user the game was lent to.
        """
        async with unit_of_work(db, "complete_order"):
            order = await db.get(GameOrder, order_id)
            if order is None:
                raise NotFoundError(resource="order", resource_id=str(order_id))

            user = await self._users.resolve_guest(
                db, order.first_name, order.last_name, order.phone
            )
            game = await self._load_game(db, order.game_id)
            await self._apply_lend(db, game, user.id, f"Ordered from table {order.table_id}")

            await db.delete(order)
            await db.flush()
            user_id = user.id
            game_id = game.id

        logger.info("Order %s completed: game %s lent to user %s", order_id, game_id, user_id)
        await self._award_first_borrow(db, user_id)
        return user_id

    async def cancel_order(self, db: AsyncSession, order_id: int) -> None:
        async with unit_of_work(db, "cancel_order"):
            order = await db.get(GameOrder, order_id)
            if order is None:
                raise NotFoundError(resource="order", resource_id=str(order_id))
            await db.delete(order)
        logger.info("Order %s cancelled", order_id)

    async def list_orders(self, db: AsyncSession) -> List[GameOrder]:
        """Pending orders, oldest first."""
        async with unit_of_work(db, "list_orders"):
            result = await db.execute(
                select(GameOrder).order_by(GameOrder.created_at, GameOrder.id)
            )
            return list(result.scalars().all())

    # ── Steps ─────────────────────────────────────────────────────────────

    async def _load_game(self, db: AsyncSession, game_id: int, lock: bool = True) -> Game:
        """
        Fetch a game, locking its row for the rest of the transaction.

        populate_existing refreshes an instance already in the identity map
        with the locked row's values.
        """
        query = select(Game).where(Game.id == game_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        game = result.scalar_one_or_none()
        if game is None:
            raise NotFoundError(resource="game", resource_id=str(game_id))
        return game

    async def _apply_lend(
        self, db: AsyncSession, game: Game, user_id: int, note: Optional[str]
    ) -> GameHistoryEntry:
        """The lend effect shared by lend_game and complete_order. No commit."""
        now = utcnow()
        game.lent_out = True
        game.times_lent = (game.times_lent or 0) + 1
        game.last_lent = now
        await db.flush()

        return await self._record_history(
            db, game_id=game.id, user_id=user_id, action=LEND, note=note, timestamp=now
        )

    async def _record_history(
        self,
        db: AsyncSession,
        game_id: int,
        user_id: Optional[int],
        action: str,
        note: Optional[str],
        timestamp: datetime,
        returned_at: Optional[datetime] = None,
    ) -> GameHistoryEntry:
        entry = GameHistoryEntry(
            game_id=game_id,
            user_id=user_id,
            action=action,
            note=note,
            timestamp=timestamp,
            returned_at=returned_at,
        )
        db.add(entry)
        await db.flush()
        return entry

    async def _close_party_sessions(
        self,
        db: AsyncSession,
        game_id: int,
        user_id: int,
        notes: Optional[str],
        now: datetime,
    ) -> int:
        result = await db.execute(
            select(PartySession).where(
                PartySession.game_id == game_id,
                PartySession.returned_at.is_(None),
            )
        )
        sessions = list(result.scalars().all())
        for party_session in sessions:
            party_session.returned_at = now
            party_session.returned_by_user_id = user_id
            party_session.return_notes = notes
        if sessions:
            await db.flush()
        return len(sessions)

    async def _award_first_borrow(self, db: AsyncSession, user_id: int) -> None:
        """
        Best-effort: the lend is already committed, so a failure here is
        logged and rolled back on its own.
        """
        try:
            await self._badges.award(db, user_id, FIRST_BORROW)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning("Could not award %s badge to user %s: %s", FIRST_BORROW, user_id, str(e))


# ── Singleton Instance ────────────────────────────────────────────────────
lending_service = LendingService()
