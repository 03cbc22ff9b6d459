"""
Parking Auth Service
User and admin authentication for the parking management platform
"""

__version__ = "1.0.0"
