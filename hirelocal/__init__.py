"""
HireLocal API

Authentication and session management for the local-services marketplace.
"""

__version__ = "1.0.0"
