import logging
from typing import List

from .models import Registration
from .publisher import EventPublisher
from .registration_ledger import RegistrationLedger
from .storage import atomic
from .tournament_catalog import TournamentCatalog
from shared.errors import (
    ValidationError, RegistrationClosed, TournamentFull, AlreadyRegistered, Forbidden
)
from shared.events import EventType, registration_event
from shared.lifecycle import registration_open, utcnow

logger = logging.getLogger(__name__)

TEAM_NAME_MAX_LENGTH = 100


def normalize_team_name(team_name) -> str:
    if team_name is None:
        return None
    if not isinstance(team_name, str):
        raise ValidationError({'team_name': "Team name must be a string"})
    team_name = team_name.strip()
    if len(team_name) > TEAM_NAME_MAX_LENGTH:
        raise ValidationError({'team_name': f"Team name is limited to {TEAM_NAME_MAX_LENGTH} characters"})
    return team_name or None


class RegistrationService:
    """
    The only entry point for joining or leaving a tournament.

    Each operation locks the tournament row, checks the business rules and
    mutates the ledger inside one transaction, so the capacity counter always
    equals the number of registrations.
    """

    def __init__(
        self,
        catalog: TournamentCatalog = None,
        ledger: RegistrationLedger = None,
        publisher: EventPublisher = None,
        clock=utcnow
    ):
        self.publisher = publisher or EventPublisher()
        self.catalog = catalog or TournamentCatalog(self.publisher, clock)
        self.ledger = ledger or RegistrationLedger()
        self.clock = clock

    def register(self, tournament_id: int, user_id: int, team_name: str = None) -> Registration:
        team_name = normalize_team_name(team_name)

        with atomic('register'):
            tournament = self.catalog.get(tournament_id, for_update=True)

            if not registration_open(self.clock(), tournament.registration_deadline):
                raise RegistrationClosed("Registration for this tournament is closed")
            if tournament.current_participants >= tournament.max_participants:
                raise TournamentFull("Tournament is full")
            if self.ledger.is_registered(tournament_id, user_id):
                raise AlreadyRegistered("Already registered for this tournament")

            registration = self.ledger.add(tournament, user_id, team_name)
            seats_taken = tournament.current_participants

        logger.info(f"User {user_id} registered for tournament {tournament_id} ({seats_taken} seats taken)")
        self.publisher.publish(registration_event(
            EventType.REGISTRATION_CREATED, tournament_id, user_id, registration.id, seats_taken
        ))
        return registration

    def withdraw(self, tournament_id: int, user_id: int):
        with atomic('withdraw'):
            tournament = self.catalog.get(tournament_id, for_update=True)
            removed = self.ledger.remove(tournament_id, user_id)
        seats_taken = self._seats_taken(tournament)

        logger.info(f"User {user_id} withdrew from tournament {tournament_id}")
        self.publisher.publish(registration_event(
            EventType.REGISTRATION_WITHDRAWN, tournament_id, user_id, removed['id'], seats_taken
        ))

    def remove_participant(self, tournament_id: int, registration_id: int, requester_is_admin: bool):
        if not requester_is_admin:
            raise Forbidden("Admin privileges required")

        with atomic('remove participant'):
            tournament = self.catalog.get(tournament_id, for_update=True)
            removed = self.ledger.remove_by_id(tournament_id, registration_id)
        seats_taken = self._seats_taken(tournament)

        logger.info(f"Admin removed registration {registration_id} (user {removed['user_id']}) from tournament {tournament_id}")
        self.publisher.publish(registration_event(
            EventType.PARTICIPANT_REMOVED, tournament_id, removed['user_id'], registration_id, seats_taken
        ))

    def withdraw_everywhere(self, user_id: int) -> List[dict]:
        """Drop every seat a user holds. Runs inside the caller's transaction."""
        removed = self.ledger.remove_all_for_user(user_id)
        for registration in removed:
            logger.info(f"Released seat in tournament {registration['tournament_id']} held by user {user_id}")
        return removed

    def announce_withdrawals(self, removed: List[dict]):
        for registration in removed:
            self.publisher.publish(registration_event(
                EventType.REGISTRATION_WITHDRAWN,
                registration['tournament_id'],
                registration['user_id'],
                registration['id'],
                None
            ))

    def _seats_taken(self, tournament) -> int:
        # Attributes expired on commit; this re-reads the committed counter
        return tournament.current_participants

    def reconcile_counters(self) -> dict:
        """Recompute every cached counter from the ledger. Returns {tournament_id: drift}."""
        drifted = {}
        with atomic('reconcile counters'):
            for tournament in self.catalog.list():
                drift = self.ledger.recount(tournament)
                if drift:
                    drifted[tournament.id] = drift
        return drifted
