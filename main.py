"""Web Service Entry Point - Root Module.

This is the root-level ASGI entry point (``uvicorn main:app``).
It imports from the api package.
"""

from api.main import app, create_app

__all__ = [
    "app",
    "create_app",
]
