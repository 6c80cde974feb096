from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timezone
import json


class EventType(str, Enum):
    # Tournament lifecycle
    TOURNAMENT_CREATED = "tournament.created"
    TOURNAMENT_UPDATED = "tournament.updated"
    TOURNAMENT_DELETED = "tournament.deleted"

    # Registration ledger
    REGISTRATION_CREATED = "registration.created"
    REGISTRATION_WITHDRAWN = "registration.withdrawn"
    PARTICIPANT_REMOVED = "participant.removed"


LIFECYCLE_EVENTS = {
    EventType.TOURNAMENT_CREATED,
    EventType.TOURNAMENT_UPDATED,
    EventType.TOURNAMENT_DELETED,
}


@dataclass
class Event:
    type: EventType
    tournament_id: int
    timestamp: str = None
    data: dict = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"
        if self.data is None:
            self.data = {}

    def to_dict(self) -> dict:
        return {
            "type": self.type.value if isinstance(self.type, EventType) else self.type,
            "tournament_id": self.tournament_id,
            "timestamp": self.timestamp,
            "data": self.data
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @property
    def channels(self):
        channels = [f"tournament:{self.tournament_id}:events"]
        if self.type in LIFECYCLE_EVENTS:
            channels.append("global:announcements")
        return channels


def tournament_event(event_type: EventType, tournament_id: int, name: str = None) -> Event:
    return Event(
        type=event_type,
        tournament_id=tournament_id,
        data={"name": name} if name else {}
    )


def registration_event(
    event_type: EventType,
    tournament_id: int,
    user_id: int,
    registration_id: int,
    current_participants: int
) -> Event:
    return Event(
        type=event_type,
        tournament_id=tournament_id,
        data={
            "user_id": user_id,
            "registration_id": registration_id,
            "current_participants": current_participants
        }
    )
