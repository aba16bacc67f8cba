"""
Bradspel Backend — Authentication Service
==========================================

What:  Issues and verifies the credentials that identify staff and members.
How:   - Access tokens: short-lived HS256 JWTs carrying the user id (`sub`)
         and role. Verified statelessly on every request.
       - Refresh tokens: opaque random strings. Only their SHA-256 hash is
         stored (refresh_tokens table); each refresh revokes the presented
         token and issues a new pair.
       - Passwords: werkzeug's salted hashes.
Who:   routes/auth.py (login/refresh/logout) and dependencies.py (request
       authentication).

Token Flow:
    login ──▶ (access, refresh#1)
    refresh#1 ──▶ (access', refresh#2)   refresh#1 revoked
    refresh#1 ──▶ 401                    already consumed
    logout(refresh#2) ──▶ refresh#2 revoked
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from bradspel.config import settings
from bradspel.database import unit_of_work
from bradspel.exceptions import AuthError, ValidationError
from bradspel.models import RefreshToken, User
from bradspel.models.game import utcnow
from bradspel.services.user_service import UserService, user_service

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as decoded from an access token."""

    user_id: int
    role: str


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: Optional[str], password: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TokenStore:
    """Persisted refresh tokens. Methods flush; callers commit."""

    def __init__(self, ttl_days: Optional[int] = None):
        self.ttl = timedelta(days=ttl_days or settings.refresh_token_ttl_days)

    async def issue(self, db: AsyncSession, user_id: int) -> str:
        token = secrets.token_urlsafe(48)
        now = utcnow()
        db.add(
            RefreshToken(
                user_id=user_id,
                token_hash=_hash_token(token),
                issued_at=now,
                expires_at=now + self.ttl,
            )
        )
        await db.flush()
        return token

    async def consume(self, db: AsyncSession, token: str) -> int:
        """
        Revoke a live token and return its owner's id.

        Raises:
            AuthError: unknown, revoked or expired token
        """
        result = await db.execute(
            select(RefreshToken).where(RefreshToken.token_hash == _hash_token(token))
        )
        stored = result.scalar_one_or_none()
        if stored is None or stored.revoked_at is not None:
            raise AuthError(message="Invalid refresh token")
        now = utcnow()
        if _as_utc(stored.expires_at) <= now:
            raise AuthError(message="Refresh token has expired")
        stored.revoked_at = now
        await db.flush()
        return stored.user_id

    async def revoke(self, db: AsyncSession, token: str) -> bool:
        result = await db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == _hash_token(token),
                RefreshToken.revoked_at.is_(None),
            )
            .values(revoked_at=utcnow())
        )
        return result.rowcount > 0


class AuthService:
    """
    Login, token refresh, logout, and access token verification.

    Responsibilities:
        - create_access_token(): sign a JWT for a user
        - authenticate():        decode a bearer token into an Identity
        - login():               check a password, issue a token pair
        - refresh():             rotate a refresh token
        - logout():              revoke a refresh token
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_ttl_minutes: Optional[int] = None,
        tokens: Optional[TokenStore] = None,
        users: Optional[UserService] = None,
    ):
        self.secret = secret or settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        self.access_ttl = timedelta(minutes=access_ttl_minutes or settings.access_token_ttl_minutes)
        self.tokens = tokens or TokenStore()
        self._users = users or user_service

    @property
    def access_ttl_seconds(self) -> int:
        return int(self.access_ttl.total_seconds())

    def create_access_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "role": user.role,
            "type": ACCESS_TOKEN_TYPE,
            "iat": now,
            "exp": now + self.access_ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def authenticate(self, token: str) -> Identity:
        """
        Raises:
            AuthError: bad signature, expired, or not an access token
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthError(message="Access token has expired")
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected access token: %s", str(e))
            raise AuthError(message="Invalid access token")

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise AuthError(message="Invalid access token")
        try:
            return Identity(user_id=int(payload["sub"]), role=str(payload["role"]))
        except (KeyError, ValueError):
            raise AuthError(message="Invalid access token")

    async def _issue_pair(self, db: AsyncSession, user: User) -> Tuple[str, str]:
        refresh_token = await self.tokens.issue(db, user.id)
        return self.create_access_token(user), refresh_token

    async def login(
        self,
        db: AsyncSession,
        password: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Tuple[str, str]:
        """
        Returns:
            (access_token, refresh_token)

        Raises:
            ValidationError: neither phone nor email given
            AuthError:       unknown user, guest account or wrong password
        """
        if not (phone or email):
            raise ValidationError(message="phone or email is required", field="phone")

        async with unit_of_work(db, "login"):
            if email:
                user = await self._users.find_by_email(db, email)
            else:
                user = await self._users.find_by_phone(db, phone)

            if user is None or not verify_password(user.password_hash, password):
                logger.info("Failed login attempt")
                raise AuthError(message="Invalid credentials")

            access_token, refresh_token = await self._issue_pair(db, user)

        logger.info("User %s logged in", user.id)
        return access_token, refresh_token

    async def refresh(self, db: AsyncSession, refresh_token: str) -> Tuple[str, str]:
        async with unit_of_work(db, "refresh_token"):
            user_id = await self.tokens.consume(db, refresh_token)
            user = await self._users.get_user(db, user_id)
            if user is None:
                raise AuthError(message="Invalid refresh token")
            pair = await self._issue_pair(db, user)
        return pair

    async def logout(self, db: AsyncSession, refresh_token: str) -> None:
        """Revoke a refresh token. Unknown or already revoked tokens are ignored."""
        async with unit_of_work(db, "logout"):
            revoked = await self.tokens.revoke(db, refresh_token)
        if revoked:
            logger.info("Refresh token revoked")


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
