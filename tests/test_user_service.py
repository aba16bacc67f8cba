"""
Bradspel Backend — User Resolution Tests
=========================================
"""

import pytest

from bradspel.exceptions import ValidationError
from bradspel.services.user_service import UserService, normalize_phone


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("070-123 45 67", "0701234567"),
            ("+46 (0)70 123 45 67", "460701234567"),
            ("0701234567", "0701234567"),
            ("n/a", ""),
            ("", ""),
            (None, ""),
        ],
    )
    def test_strips_everything_but_digits(self, raw, expected):
        assert normalize_phone(raw) == expected


class TestResolveGuest:
    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_creates_guest_with_normalized_phone(self, db_session):
        guest = await self.service.resolve_guest(db_session, " Greta ", "Ek", "070-123 45 67")

        assert guest.id is not None
        assert guest.first_name == "Greta"
        assert guest.phone == "0701234567"
        assert guest.role == "user"
        assert guest.is_guest

    @pytest.mark.asyncio
    async def test_returns_existing_user(self, db_session, member):
        resolved = await self.service.resolve_guest(db_session, "Other", "Name", "070 111 22 33")
        assert resolved.id == member.id
        # Existing names are not overwritten by what the guest typed
        assert resolved.first_name == "Alva"

    @pytest.mark.asyncio
    async def test_missing_fields_are_listed(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.resolve_guest(db_session, "", None, "---")

        assert exc_info.value.field == "firstName"
        assert exc_info.value.context["missing"] == ["firstName", "lastName", "phone"]

    @pytest.mark.asyncio
    async def test_find_by_email_ignores_case(self, db_session, member):
        found = await self.service.find_by_email(db_session, "  ALVA@example.com ")
        assert found.id == member.id

    @pytest.mark.asyncio
    async def test_find_by_phone_without_digits(self, db_session, member):
        assert await self.service.find_by_phone(db_session, "unknown") is None
