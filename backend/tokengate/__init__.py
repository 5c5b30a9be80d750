"""Expose the application factory at package level.

``from tokengate import create_app`` is the entry point for WSGI servers,
the Flask CLI (``flask --app tokengate``) and tests.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
