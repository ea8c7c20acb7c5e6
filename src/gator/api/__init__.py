"""
REST API layer for the gator hub.

Provides a FastAPI application factory over a ``Hub``. The hub holds all
document, transformation and bus logic; this package handles only HTTP
transport concerns: body limits, content types, error mapping, and request
context.

Quick start::

    from gator.api import create_app

    app = create_app()  # ready for uvicorn

Tags:
    gator, api, REST, FastAPI, transport-layer
"""

from gator.api.app import create_app

__all__ = ["create_app"]
