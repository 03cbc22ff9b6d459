"""
API routes for the auth service
"""

from . import admin, auth, health, profile

__all__ = ["admin", "auth", "health", "profile"]
