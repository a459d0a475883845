"""HireLocal domain models."""

from hirelocal.models.user import User, UserRole, Session, SessionList

__all__ = ["User", "UserRole", "Session", "SessionList"]
