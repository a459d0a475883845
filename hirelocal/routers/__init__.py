"""
HireLocal API Routers.
"""

from hirelocal.routers.auth import router as auth_router

__all__ = ["auth_router"]
