"""
REST API layer for rankbrnd.

A FastAPI application factory whose routers delegate to
:mod:`rankbrnd.ops`. This package handles only HTTP concerns:
serialisation, authentication, error mapping and request context.

Quick start::

    from rankbrnd.api import create_app

    app = create_app()  # ready for uvicorn
"""

from rankbrnd.api.app import create_app

__all__ = ["create_app"]
