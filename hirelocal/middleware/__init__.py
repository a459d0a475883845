"""Request middleware."""

from hirelocal.middleware.auth import AuthMiddleware, CurrentUser

__all__ = ["AuthMiddleware", "CurrentUser"]
