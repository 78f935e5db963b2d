"""
HTTP API for Job Manager.
"""

from api.app import create_app

__all__ = ["create_app"]
