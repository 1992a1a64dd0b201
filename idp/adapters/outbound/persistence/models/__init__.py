# idp/adapters/outbound/persistence/models/__init__.py

"""
ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from idp.adapters.outbound.persistence.models.base_model import Base
from idp.adapters.outbound.persistence.models.user_model import User

__all__ = [
    "Base",
    "User",
]
