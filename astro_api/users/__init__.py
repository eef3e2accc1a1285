"""
Account Store

User records, password hashing and the ``/api/users`` endpoints.
"""

from astro_api.users.router import router as users_router

__all__ = ["users_router"]
