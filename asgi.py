"""
asgi.py -- ASGI entry point for Storefront.

Run with:  uvicorn asgi:app --reload

The product resource routers live outside this repository; they mount onto
the same app here and use auth.dependencies.get_current_claims for access.
"""

from api.main import app

__all__ = ["app"]
