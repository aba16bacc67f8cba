"""
Bradspel Backend — API Routes Package
======================================

Route Inventory:
    - lending.py:  POST /lend/{gameId}, POST /return/{gameId}
    - orders.py:   POST/GET /order-game, POST /order-game/{orderId}/complete,
                   DELETE /order-game/{orderId}
    - games.py:    GET /games, GET /games/{id}, GET /games/{id}/history,
                   POST /import, POST /games/{id}/image, GET /files/{path}
    - auth.py:     POST /auth/login, /auth/refresh, /auth/logout
    - health.py:   GET /, GET /ping, GET /health

Routes stay thin: pull values out of the request, call a service, shape the
response. Business rules live in services/.
"""
