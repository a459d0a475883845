"""
HireLocal Schemas.

Pydantic models for request/response validation.
"""

from hirelocal.schemas.auth import *
