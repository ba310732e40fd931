"""
asgi.py -- ASGI entry point for E-Store.

Run with:  uvicorn asgi:app --reload

The browser front-end is served separately and talks to /api/v1 only, so
this module just re-exports the API application.
"""

from api.main import app

__all__ = ["app"]
