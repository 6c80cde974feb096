import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Tuple

from sqlalchemy import select, update, delete

from .models import db, Tournament, Registration, Winner
from .publisher import EventPublisher
from .storage import atomic, retry_read_once
from shared.errors import ValidationError, NotFound
from shared.events import EventType, tournament_event
from shared.lifecycle import TournamentStatus, utcnow

logger = logging.getLogger(__name__)


def parse_timestamp(value) -> datetime:
    """Parse an ISO-8601 timestamp; aware values are normalised to naive UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Not a timestamp: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _text(value) -> str:
    if not isinstance(value, str):
        raise ValueError("must be a string")
    return value.strip()


def _count(value) -> int:
    if isinstance(value, bool):
        raise ValueError("must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("must be an integer")
    return int(value)


def _money(value) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("must be a number")
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise ValueError("must be a finite number")
    return amount


_PARSERS = {
    'name': _text,
    'description': _text,
    'location': _text,
    'maps_link': _text,
    'start_date': parse_timestamp,
    'end_date': parse_timestamp,
    'registration_deadline': parse_timestamp,
    'max_participants': _count,
    'fee': _money,
}

# Columns an explicit JSON null may clear
NULLABLE_FIELDS = ('description', 'location', 'maps_link')


@dataclass
class TournamentFields:
    """Typed, possibly partial set of editable tournament fields.

    ``None`` means "not provided"; ``cleared`` names nullable columns an
    explicit null should reset. The whole record is validated before any
    write happens.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    maps_link: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    registration_deadline: Optional[datetime] = None
    max_participants: Optional[int] = None
    fee: Optional[Decimal] = None
    cleared: Tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, data: dict) -> "TournamentFields":
        """Coerce a JSON body; unknown keys and nulls are ignored."""
        values = {}
        errors = {}
        cleared = []
        for name, parse in _PARSERS.items():
            raw = data.get(name)
            if raw is None:
                if name in data and name in NULLABLE_FIELDS:
                    cleared.append(name)
                continue
            try:
                values[name] = parse(raw)
            except (TypeError, ValueError, InvalidOperation) as e:
                errors[name] = f"Invalid value: {e}"
        if errors:
            raise ValidationError(errors)
        return cls(cleared=tuple(cleared), **values)

    def provided(self) -> dict:
        values = {name: getattr(self, name) for name in _PARSERS if getattr(self, name) is not None}
        values.update((name, None) for name in self.cleared if name not in values)
        return values


def validate_tournament(values: dict, current_participants: int = 0):
    """Check a complete tournament record, collecting every violation."""
    errors = {}

    if not (values.get('name') or '').strip():
        errors['name'] = "Name is required"

    for key in ('start_date', 'end_date', 'registration_deadline', 'max_participants'):
        if values.get(key) is None:
            errors[key] = "This field is required"

    start = values.get('start_date')
    end = values.get('end_date')
    deadline = values.get('registration_deadline')

    if start is not None and end is not None and not start < end:
        errors['end_date'] = "End date must be after start date"
    if start is not None and deadline is not None and deadline > start:
        errors['registration_deadline'] = "Registration must close before the tournament starts"

    capacity = values.get('max_participants')
    if capacity is not None:
        if capacity < 1:
            errors['max_participants'] = "At least one participant is required"
        elif capacity < current_participants:
            errors['max_participants'] = (
                f"Cannot go below the {current_participants} players already registered"
            )

    fee = values.get('fee')
    if fee is not None and fee < 0:
        errors['fee'] = "Fee cannot be negative"

    if errors:
        raise ValidationError(errors)


class TournamentCatalog:
    """
    Stores tournament records:
    - Create/update/delete with whole-record validation
    - Lookup (optionally row-locked for ledger mutations)
    - Listing with derived lifecycle status
    """

    def __init__(self, publisher: EventPublisher = None, clock=utcnow):
        self.publisher = publisher or EventPublisher()
        self.clock = clock

    def create(self, tournament_fields: TournamentFields) -> Tournament:
        values = tournament_fields.provided()
        values.setdefault('fee', Decimal('0'))
        validate_tournament(values)

        with atomic('create tournament'):
            tournament = Tournament(current_participants=0, **values)
            db.session.add(tournament)

        logger.info(f"Created tournament {tournament.id} ({tournament.name})")
        self.publisher.publish(tournament_event(EventType.TOURNAMENT_CREATED, tournament.id, tournament.name))
        return tournament

    def get(self, tournament_id: int, for_update: bool = False) -> Tournament:
        """Get a tournament or raise NotFound.

        ``for_update`` takes a row lock for the rest of the transaction so
        capacity checks and counter writes serialise per tournament.
        """
        if for_update:
            stmt = (
                select(Tournament)
                .where(Tournament.id == tournament_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            tournament = db.session.execute(stmt).scalar_one_or_none()
        else:
            tournament = db.session.get(Tournament, tournament_id)

        if tournament is None:
            raise NotFound("Tournament not found")
        return tournament

    def update(self, tournament_id: int, tournament_fields: TournamentFields) -> Tournament:
        changes = tournament_fields.provided()
        if not changes:
            raise ValidationError({'body': "No valid updates provided"}, "No valid updates provided")

        with atomic('update tournament'):
            tournament = self.get(tournament_id, for_update=True)
            merged = {name: getattr(tournament, name) for name in _PARSERS}
            merged.update(changes)
            validate_tournament(merged, current_participants=tournament.current_participants)

            for key, value in changes.items():
                setattr(tournament, key, value)

        logger.info(f"Updated tournament {tournament_id}: {sorted(changes)}")
        self.publisher.publish(tournament_event(EventType.TOURNAMENT_UPDATED, tournament_id, tournament.name))
        return tournament

    def delete(self, tournament_id: int):
        """Delete a tournament together with all of its registrations."""
        with atomic('delete tournament'):
            tournament = self.get(tournament_id, for_update=True)
            name = tournament.name

            db.session.execute(
                update(Winner)
                .where(Winner.tournament_id == tournament_id)
                .values(tournament_id=None)
                .execution_options(synchronize_session=False)
            )
            removed = db.session.execute(
                delete(Registration).where(Registration.tournament_id == tournament_id)
            ).rowcount
            db.session.delete(tournament)

        logger.info(f"Deleted tournament {tournament_id} and {removed} registration(s)")
        self.publisher.publish(tournament_event(EventType.TOURNAMENT_DELETED, tournament_id, name))

    @retry_read_once
    def list(self, status: str = None) -> List[Tournament]:
        """All tournaments, latest start first, optionally filtered by derived status."""
        wanted = None
        if status:
            try:
                wanted = TournamentStatus(status)
            except ValueError:
                allowed = ", ".join(s.value for s in TournamentStatus)
                raise ValidationError({'status': f"Status must be one of {allowed}"})

        tournaments = (
            Tournament.query
            .order_by(Tournament.start_date.desc(), Tournament.id.desc())
            .all()
        )
        if wanted is None:
            return tournaments

        now = self.clock()
        return [t for t in tournaments if t.status_at(now) == wanted]
