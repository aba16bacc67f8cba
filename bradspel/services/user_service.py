"""
Bradspel Backend — User Resolution
===================================

What:  The two user operations the lending workflow consumes:
       look up a user by id, and resolve-or-create a guest by phone number.
How:   Phone numbers are reduced to their digits before any lookup or insert,
       so "070-123 45 67" and "0701234567" are the same person.
Who:   LendingService (lend validation, order completion), AuthService (login).

The methods flush but never commit; the caller owns the transaction.
"""

import logging
import re
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bradspel.exceptions import ValidationError
from bradspel.models import User

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_phone(raw: Optional[str]) -> str:
    """Strip every character outside 0-9. Returns "" for None."""
    return _NON_DIGITS.sub("", raw or "")


class UserService:
    """Read and guest-creation access to the users table."""

    async def get_user(self, db: AsyncSession, user_id: int) -> Optional[User]:
        return await db.get(User, user_id)

    async def find_by_phone(self, db: AsyncSession, phone: str) -> Optional[User]:
        normalized = normalize_phone(phone)
        if not normalized:
            return None
        result = await db.execute(select(User).where(User.phone == normalized))
        return result.scalar_one_or_none()

    async def find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def resolve_guest(
        self,
        db: AsyncSession,
        first_name: Optional[str],
        last_name: Optional[str],
        phone: Optional[str],
    ) -> User:
        """
        Return the user owning `phone`, creating a guest if nobody does.

        Raises:
            ValidationError: a name is blank or the phone has no digits.
        """
        first = (first_name or "").strip()
        last = (last_name or "").strip()
        normalized = normalize_phone(phone)
        if not first or not last or not normalized:
            missing = [
                label
                for label, value in (("firstName", first), ("lastName", last), ("phone", normalized))
                if not value
            ]
            raise ValidationError(
                message="Customer name and phone number are required",
                field=missing[0],
                context={"missing": missing},
            )

        existing = await self.find_by_phone(db, normalized)
        if existing is not None:
            logger.debug("Resolved phone to existing user %s", existing.id)
            return existing

        guest = User(first_name=first, last_name=last, phone=normalized)
        db.add(guest)
        await db.flush()
        logger.info("Created guest user %s", guest.id)
        return guest


user_service = UserService()
