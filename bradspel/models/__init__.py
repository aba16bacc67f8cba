# Importing this package registers every table on Base.metadata
from bradspel.models.game import LEND, RETURN, Game, GameHistoryEntry, GameOrder
from bradspel.models.social import Badge, Notification, Party, PartySession, UserBadge
from bradspel.models.user import (
    ROLE_ADMIN,
    ROLE_STAFF,
    ROLE_USER,
    RefreshToken,
    User,
)

__all__ = [
    "LEND",
    "RETURN",
    "ROLE_ADMIN",
    "ROLE_STAFF",
    "ROLE_USER",
    "Badge",
    "Game",
    "GameHistoryEntry",
    "GameOrder",
    "Notification",
    "Party",
    "PartySession",
    "RefreshToken",
    "User",
    "UserBadge",
]
