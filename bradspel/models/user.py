"""
Bradspel Backend — User and Refresh Token Models
=================================================

What:  `users` and the persisted refresh-token store `refresh_tokens`.

A user without a password_hash is a guest: created when a table order is
completed, identified only by its normalized phone number, and promoted to a
member once a password is set.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from bradspel.database import Base
from bradspel.models.game import utcnow

ROLE_USER = "user"
ROLE_STAFF = "staff"
ROLE_ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    # Digits only (see services.user_service.normalize_phone)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, unique=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True, unique=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    role: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ROLE_USER, server_default=text("'user'")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def is_guest(self) -> bool:
        return self.password_hash is None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role='{self.role}', guest={self.is_guest})>"


class RefreshToken(Base):
    """
    One issued refresh token.

    Only the SHA-256 hash of the token is stored. A token is usable while
    revoked_at is NULL and expires_at lies in the future; rotation revokes
    the presented token and issues a new row.
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token_hash: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("idx_refresh_tokens_user_id", "user_id"),)
