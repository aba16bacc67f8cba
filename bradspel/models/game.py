"""
Bradspel Backend — Game, History and Order Models
==================================================

What:  ORM models for the three tables the lending workflow keeps consistent:
       `games`, `game_history` and `game_orders`.
Who:   LendingService and GameService; Alembic migration 001 mirrors them.

Table Design Rationale:
    - games.lent_out / times_lent / last_lent: the lend state of a copy.
      lent_out is true exactly when the newest history row for the game is a
      'lend'; times_lent always equals the number of 'lend' rows.
    - game_history: append-only. Rows are inserted on every transition and
      never updated by the application.
    - game_orders: pending table orders. A row is consumed (deleted) when the
      order is completed into a lend, or deleted on cancellation.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    false,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from bradspel.database import Base

LEND = "lend"
RETURN = "return"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Game(Base):
    """
    A physical copy of a board game in the café's catalog.

    Lifecycle (lend state only):
        AVAILABLE (lent_out=False) ⇄ LENT (lent_out=True), for the life of the row.
    """

    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ── Catalog ───────────────────────────────────────────────────────────
    title_sv: Mapped[str] = mapped_column(String(255), nullable=False)
    title_en: Mapped[str] = mapped_column(String(255), nullable=False)
    description_sv: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description_en: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    players: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    time: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    age: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    tags: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    img: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    rules: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # ── Lending policy ────────────────────────────────────────────────────
    slow_day_only: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    trusted_only: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    max_table_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    condition_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # JSON-encoded list of staff names
    staff_picks: Mapped[str] = mapped_column(
        Text, nullable=False, default="[]", server_default=text("'[]'")
    )

    # ── Lend state ────────────────────────────────────────────────────────
    lent_out: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    times_lent: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    last_lent: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Game(id={self.id}, title_sv='{self.title_sv}', lent_out={self.lent_out})>"


class GameHistoryEntry(Base):
    """
    One lend or return transition. Immutable once written.

    returned_at is only set on 'return' rows.
    """

    __tablename__ = "game_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    action: Mapped[str] = mapped_column(String(16), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    returned_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint("action IN ('lend', 'return')", name="ck_game_history_action"),
        Index("idx_game_history_game_id", "game_id"),
        Index("idx_game_history_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<GameHistoryEntry(id={self.id}, game_id={self.game_id}, "
            f"action='{self.action}', user_id={self.user_id})>"
        )


class GameOrder(Base):
    """A pending request, placed from a table, to borrow one game."""

    __tablename__ = "game_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False
    )
    table_id: Mapped[str] = mapped_column(String(50), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Stored as typed; normalized only when the order is completed
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<GameOrder(id={self.id}, game_id={self.game_id}, table_id='{self.table_id}')>"
