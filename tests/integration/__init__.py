"""Integration tests for the election API.

- API endpoint tests against the ASGI app on in-memory stores
- PostgreSQL store tests (require TEST_DATABASE_URL)
"""
