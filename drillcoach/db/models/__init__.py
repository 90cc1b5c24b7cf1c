# SQLAlchemy models
from .base import Base
from .progression import AttemptRow, DrillRow, SessionRow, UserProgressionRow

__all__ = [
    "Base",
    "AttemptRow",
    "DrillRow",
    "SessionRow",
    "UserProgressionRow",
]
