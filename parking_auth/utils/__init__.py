"""
Utility modules for the auth service
"""

from .database import AuthDatabase

__all__ = ["AuthDatabase"]
