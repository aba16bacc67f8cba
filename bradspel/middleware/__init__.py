"""
Bradspel Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit first: the public order endpoint is unauthenticated, so
       abusive clients are turned away before any database work
    2. Request ID: correlation id for logs and error bodies
    3. Logging: method, path, status and duration, tagged with the request ID

    Responses pass back through the chain in reverse, which is when the
    X-Request-ID header and the access log line are written.
"""
