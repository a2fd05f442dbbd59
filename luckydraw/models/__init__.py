from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .participant import Participant  # noqa: F401
from .prize import Prize, PrizeCategory  # noqa: F401
from .outcome import Outcome  # noqa: F401

__all__ = [
    "Base",
    "Participant",
    "Prize",
    "PrizeCategory",
    "Outcome",
]
