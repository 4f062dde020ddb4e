from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .stored_session import StoredSession  # noqa: F401

__all__ = [
    "Base",
    "StoredSession",
]
