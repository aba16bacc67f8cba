"""
Bradspel Backend — HTTP API Tests
==================================

What:  End-to-end requests through the FastAPI app (middleware, auth,
       exception handlers) against the per-test SQLite database.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from bradspel.middleware.rate_limit import RateLimitMiddleware
from bradspel.models import Game
from bradspel.routes.health import ROOT_MESSAGE


class TestLiveness:
    @pytest.mark.asyncio
    async def test_root(self, test_client):
        response = await test_client.get("/")
        assert response.status_code == 200
        assert response.text == ROOT_MESSAGE == "🎲 Board Game Backend API is running."

    @pytest.mark.asyncio
    async def test_ping(self, test_client):
        response = await test_client.get("/ping")
        assert response.text == "pong"

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/games", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"


class TestLendingEndpoints:
    @pytest.mark.asyncio
    async def test_lend_and_return(self, test_client, session_factory, game, member, staff_headers, member_headers):
        response = await test_client.post(
            f"/lend/{game.id}", json={"userId": str(member.id), "note": "demo"}, headers=staff_headers
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Game lent out"}

        response = await test_client.post(
            f"/return/{game.id}", json={"returnNotes": "ok"}, headers=member_headers
        )
        assert response.status_code == 200

        history = (await test_client.get(f"/games/{game.id}/history")).json()
        assert [row["action"] for row in history] == ["return", "lend"]
        assert history[0]["user_id"] == member.id

        async with session_factory() as session:
            fresh = await session.get(Game, game.id)
        assert fresh.lent_out is False
        assert fresh.times_lent == 1

    @pytest.mark.asyncio
    async def test_lend_requires_token(self, test_client, game, member):
        response = await test_client.post(f"/lend/{game.id}", json={"userId": member.id})
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_lend_requires_staff_role(self, test_client, game, member, member_headers):
        response = await test_client.post(
            f"/lend/{game.id}", json={"userId": member.id}, headers=member_headers
        )
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_lend_invalid_user_id(self, test_client, game, staff_headers):
        response = await test_client.post(
            f"/lend/{game.id}", json={"userId": "nine"}, headers=staff_headers
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "userId"

    @pytest.mark.asyncio
    async def test_lend_oversized_user_id(self, test_client, game, staff_headers):
        response = await test_client.post(
            f"/lend/{game.id}", json={"userId": 10**20}, headers=staff_headers
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "userId"
        assert body["message"] == "userId is out of range"

    @pytest.mark.asyncio
    async def test_lend_oversized_game_id(self, test_client, member, staff_headers):
        response = await test_client.post(
            "/lend/99999999999999999999", json={"userId": member.id}, headers=staff_headers
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "game_id"

    @pytest.mark.asyncio
    async def test_lend_without_body(self, test_client, game, staff_headers):
        response = await test_client.post(f"/lend/{game.id}", headers=staff_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_lend_unknown_game(self, test_client, member, staff_headers):
        response = await test_client.post("/lend/999", json={"userId": member.id}, headers=staff_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_malformed_body_is_400(self, test_client, game, staff_headers):
        response = await test_client.post(
            f"/lend/{game.id}",
            content=b"{not json",
            headers={**staff_headers, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_database_failure_is_generic_500(self, test_client, game, member, staff_headers):
        failure = OperationalError("UPDATE games", {}, Exception("database is locked"))
        with patch(
            "bradspel.services.lending_service.LendingService._record_history",
            AsyncMock(side_effect=failure),
        ):
            response = await test_client.post(
                f"/lend/{game.id}", json={"userId": member.id}, headers=staff_headers
            )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "server_error"
        assert "locked" not in body["message"]
        assert "details" not in body

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_request_id(self, test_client, game, member, staff_headers):
        with patch(
            "bradspel.services.lending_service.LendingService.lend_game",
            AsyncMock(side_effect=RuntimeError("boom")),
        ):
            response = await test_client.post(
                f"/lend/{game.id}",
                json={"userId": member.id},
                headers={**staff_headers, "X-Request-ID": "feedbeef"},
            )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert body["request_id"] == "feedbeef"
        assert response.headers["X-Request-ID"] == "feedbeef"

    @pytest.mark.asyncio
    async def test_unexpected_error_generates_request_id(self, test_client, game, member, staff_headers):
        with patch(
            "bradspel.services.lending_service.LendingService.lend_game",
            AsyncMock(side_effect=RuntimeError("boom")),
        ):
            response = await test_client.post(
                f"/lend/{game.id}", json={"userId": member.id}, headers=staff_headers
            )

        assert response.status_code == 500
        rid = response.json()["request_id"]
        assert rid
        assert response.headers["X-Request-ID"] == rid


class TestOrderEndpoints:
    ORDER = {"tableId": 4, "firstName": "Greta", "lastName": "Ek", "phone": "070-123 45 67"}

    @pytest.mark.asyncio
    async def test_order_flow(self, test_client, session_factory, game, staff_headers):
        response = await test_client.post("/order-game", json={**self.ORDER, "gameId": game.id})
        assert response.status_code == 200
        order_id = response.json()["orderId"]

        listed = (await test_client.get("/order-game", headers=staff_headers)).json()
        assert listed[0]["id"] == order_id
        assert listed[0]["tableId"] == "4"
        assert listed[0]["firstName"] == "Greta"

        response = await test_client.post(f"/order-game/{order_id}/complete", headers=staff_headers)
        assert response.status_code == 200

        assert (await test_client.get("/order-game", headers=staff_headers)).json() == []
        async with session_factory() as session:
            assert (await session.get(Game, game.id)).lent_out is True

    @pytest.mark.asyncio
    async def test_order_missing_fields(self, test_client, game):
        response = await test_client.post("/order-game", json={"gameId": game.id, "tableId": "4"})
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "firstName"

    @pytest.mark.asyncio
    async def test_order_phone_too_long(self, test_client, game):
        response = await test_client.post(
            "/order-game", json={**self.ORDER, "gameId": game.id, "phone": "0" * 33}
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "phone"

    @pytest.mark.asyncio
    async def test_complete_oversized_order_id(self, test_client, staff_headers):
        response = await test_client.post(
            "/order-game/99999999999999999999/complete", headers=staff_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_order_unknown_game(self, test_client):
        response = await test_client.post("/order-game", json={**self.ORDER, "gameId": 999})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_complete_unknown_order(self, test_client, staff_headers):
        response = await test_client.post("/order-game/31337/complete", headers=staff_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_cancel_order(self, test_client, game, staff_headers):
        order_id = (
            await test_client.post("/order-game", json={**self.ORDER, "gameId": game.id})
        ).json()["orderId"]

        response = await test_client.delete(f"/order-game/{order_id}", headers=staff_headers)
        assert response.status_code == 200
        response = await test_client.delete(f"/order-game/{order_id}", headers=staff_headers)
        assert response.status_code == 404


class TestCatalogEndpoints:
    @pytest.mark.asyncio
    async def test_import_then_list(self, test_client, staff_headers):
        payload = [
            {"title_sv": "Schack", "slow_day_only": "1"},
            {"title_sv": "Alfapet", "title_en": "Scrabble", "staff_picks": ["Sam"]},
        ]
        response = await test_client.post("/import", json=payload, headers=staff_headers)
        assert response.json() == {"imported": 2}

        games = (await test_client.get("/games")).json()
        assert [g["title_sv"] for g in games] == ["Alfapet", "Schack"]
        assert games[1]["slow_day_only"] is True
        assert games[0]["staff_picks"] == '["Sam"]'

    @pytest.mark.asyncio
    async def test_import_requires_list(self, test_client, staff_headers):
        response = await test_client.post("/import", json={"title_sv": "Schack"}, headers=staff_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_import_with_bad_item_stores_nothing(self, test_client, staff_headers):
        payload = [{"title_sv": "Schack"}, {"title_sv": "Go", "slow_day_only": "sometimes"}]
        response = await test_client.post("/import", json=payload, headers=staff_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["details"]["field"] == "slow_day_only"
        assert body["message"] == "slow_day_only must be a boolean (true/false)"
        assert (await test_client.get("/games")).json() == []

    @pytest.mark.asyncio
    async def test_oversized_game_id(self, test_client):
        response = await test_client.get("/games/99999999999999999999")
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert (await test_client.get("/games/99999999999999999999/history")).status_code == 400

    @pytest.mark.asyncio
    async def test_get_game(self, test_client, game):
        response = await test_client.get(f"/games/{game.id}")
        assert response.json()["title_en"] == "Ludo"
        assert (await test_client.get("/games/abc")).status_code == 400

    @pytest.mark.asyncio
    async def test_image_upload_and_serve(self, test_client, game, staff_headers, sample_image_bytes):
        response = await test_client.post(
            f"/games/{game.id}/image",
            files={"file": ("cover.png", sample_image_bytes, "image/png")},
            headers=staff_headers,
        )
        assert response.status_code == 200
        url = response.json()["img"]
        assert url.startswith("/files/")

        served = await test_client.get(url)
        assert served.status_code == 200
        assert served.content == sample_image_bytes
        assert served.headers["content-type"] == "image/png"

    @pytest.mark.asyncio
    async def test_image_upload_rejects_wrong_type(self, test_client, game, staff_headers):
        response = await test_client.post(
            f"/games/{game.id}/image",
            files={"file": ("rules.pdf", b"%PDF-1.4", "application/pdf")},
            headers=staff_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_file_is_404(self, test_client):
        assert (await test_client.get("/files/2026/01/01/none.png")).status_code == 404


class TestAuthEndpoints:
    @pytest.mark.asyncio
    async def test_login_refresh_logout(self, test_client, staff):
        response = await test_client.post(
            "/auth/login", json={"email": "staff@example.com", "password": "staff-password"}
        )
        assert response.status_code == 200
        tokens = response.json()
        assert tokens["tokenType"] == "bearer"
        assert tokens["expiresIn"] > 0

        orders = await test_client.get(
            "/order-game", headers={"Authorization": f"Bearer {tokens['accessToken']}"}
        )
        assert orders.status_code == 200

        refreshed = await test_client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert refreshed.status_code == 200
        new_refresh = refreshed.json()["refreshToken"]

        replay = await test_client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert replay.status_code == 401

        response = await test_client.post("/auth/logout", json={"refreshToken": new_refresh})
        assert response.json() == {"message": "Logged out"}
        assert (
            await test_client.post("/auth/refresh", json={"refreshToken": new_refresh})
        ).status_code == 401

    @pytest.mark.asyncio
    async def test_bad_login(self, test_client, staff):
        response = await test_client.post(
            "/auth/login", json={"phone": "0709998877", "password": "nope"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_bearer_token(self, test_client):
        response = await test_client.get("/order-game", headers={"Authorization": "Bearer junk"})
        assert response.status_code == 401


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_over_limit_is_429_with_request_id(self):
        app = FastAPI()

        @app.get("/games")
        async def list_games():
            return []

        app.add_middleware(RateLimitMiddleware, max_requests=2, window=60)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            for _ in range(2):
                assert (await client.get("/games")).status_code == 200
            response = await client.get("/games", headers={"X-Request-ID": "cafe0001"})
            assert (await client.get("/health")).status_code == 404

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        assert response.headers["X-Request-ID"] == "cafe0001"
        body = response.json()
        assert body["error"] == "rate_limit_exceeded"
        assert body["request_id"] == "cafe0001"
