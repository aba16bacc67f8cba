"""
Bradspel Backend — Badges and Notifications
============================================

What:  Idempotent badge awards, each paired with a notification record.
Who:   LendingService, after a lend has committed.

Badge definitions live in code; the matching `badges` row is created the
first time a badge is awarded, so no seed migration is needed.
"""

import logging
from typing import Dict, NamedTuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bradspel.models import Badge, Notification, UserBadge

logger = logging.getLogger(__name__)

FIRST_BORROW = "first_borrow"


class BadgeDefinition(NamedTuple):
    key: str
    name: str
    description: str
    icon: str


BADGES: Dict[str, BadgeDefinition] = {
    FIRST_BORROW: BadgeDefinition(
        key=FIRST_BORROW,
        name="First Borrow",
        description="Borrowed a game for the first time",
        icon="first-borrow.svg",
    ),
}


class BadgeService:
    """
    Awards badges to users.

    award() flushes but does not commit; the caller decides whether the award
    shares a transaction with other work.
    """

    async def _get_or_create_badge(self, db: AsyncSession, definition: BadgeDefinition) -> Badge:
        result = await db.execute(select(Badge).where(Badge.key == definition.key))
        badge = result.scalar_one_or_none()
        if badge is None:
            badge = Badge(
                key=definition.key,
                name=definition.name,
                description=definition.description,
                icon=definition.icon,
            )
            db.add(badge)
            await db.flush()
        return badge

    async def has_badge(self, db: AsyncSession, user_id: int, key: str) -> bool:
        result = await db.execute(
            select(UserBadge.id)
            .join(Badge, Badge.id == UserBadge.badge_id)
            .where(UserBadge.user_id == user_id, Badge.key == key)
        )
        return result.first() is not None

    async def award(self, db: AsyncSession, user_id: int, key: str) -> bool:
        """
        Give `key` to the user unless they already hold it.

        Returns:
            True when the badge was newly awarded (and a notification queued),
            False when the user already had it.

        Raises:
            KeyError: unknown badge key (programming error).
        """
        definition = BADGES[key]
        if await self.has_badge(db, user_id, key):
            return False

        badge = await self._get_or_create_badge(db, definition)
        db.add(UserBadge(user_id=user_id, badge_id=badge.id))
        db.add(
            Notification(
                user_id=user_id,
                type="badge",
                message=f"You earned the badge '{badge.name}': {badge.description}",
            )
        )
        await db.flush()
        logger.info("Awarded badge %s to user %s", key, user_id)
        return True


badge_service = BadgeService()
