from enum import Enum
from datetime import datetime, timezone


class TournamentStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how times are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def derive_status(now: datetime, start: datetime, end: datetime) -> TournamentStatus:
    """Classify a tournament window relative to ``now``.

    Both bounds are inclusive for ``ongoing``, so a zero-length window is
    ongoing only at the exact instant ``now == start``.
    """
    if now < start:
        return TournamentStatus.UPCOMING
    if now > end:
        return TournamentStatus.COMPLETED
    return TournamentStatus.ONGOING


def registration_open(now: datetime, deadline: datetime) -> bool:
    return now <= deadline
