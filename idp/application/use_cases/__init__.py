# idp/application/use_cases/__init__.py (async version)

"""
Application services implementing the use cases exposed to the API.
"""

from idp.application.use_cases.auth_use_cases import AsyncAuthService

__all__ = [
    "AsyncAuthService",
]
