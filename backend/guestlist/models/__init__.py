"""SQLAlchemy ORM models.

    from guestlist.models import Base, Guest
"""

from guestlist.models.base import Base
from guestlist.models.guest import Guest

__all__ = ["Base", "Guest"]
