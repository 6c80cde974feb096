import logging
from typing import Optional, List, Tuple

from sqlalchemy import update, delete, func
from sqlalchemy.exc import IntegrityError

from .models import db, Tournament, Registration, User
from shared.errors import NotFound, NotRegistered, AlreadyRegistered, TournamentFull, Conflict

logger = logging.getLogger(__name__)


class RegistrationLedger:
    """
    Authoritative set of active registrations.

    Every mutation adjusts ``Tournament.current_participants`` in the same
    unit of work; callers own the transaction boundary (see ``storage.atomic``).
    """

    def find(self, tournament_id: int, user_id: int) -> Optional[Registration]:
        return Registration.query.filter_by(
            tournament_id=tournament_id,
            user_id=user_id
        ).first()

    def is_registered(self, tournament_id: int, user_id: int) -> bool:
        return self.find(tournament_id, user_id) is not None

    def count(self, tournament_id: int) -> int:
        return db.session.query(func.count(Registration.id)).filter(
            Registration.tournament_id == tournament_id
        ).scalar()

    def _claim_seat(self, tournament_id: int) -> bool:
        """Increment the counter only while a seat is free."""
        result = db.session.execute(
            update(Tournament)
            .where(
                Tournament.id == tournament_id,
                Tournament.current_participants < Tournament.max_participants
            )
            .values(current_participants=Tournament.current_participants + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _release_seat(self, tournament_id: int):
        db.session.execute(
            update(Tournament)
            .where(
                Tournament.id == tournament_id,
                Tournament.current_participants > 0
            )
            .values(current_participants=Tournament.current_participants - 1)
            .execution_options(synchronize_session=False)
        )

    def add(self, tournament: Tournament, user_id: int, team_name: str = None) -> Registration:
        """Insert a registration and take a seat for it."""
        if not self._claim_seat(tournament.id):
            # Our view of the counter was stale; re-read and re-check once
            db.session.refresh(tournament)
            if tournament.current_participants >= tournament.max_participants:
                raise TournamentFull("Tournament is full")
            if not self._claim_seat(tournament.id):
                raise Conflict("Could not reserve a seat, please try again")

        registration = Registration(
            tournament_id=tournament.id,
            user_id=user_id,
            team_name=team_name
        )
        db.session.add(registration)
        try:
            db.session.flush()
        except IntegrityError as e:
            raise AlreadyRegistered("Already registered for this tournament") from e

        db.session.refresh(tournament)
        return registration

    def _delete(self, registration: Registration) -> dict:
        snapshot = registration.to_dict()
        tournament_id = registration.tournament_id
        removed = db.session.execute(
            delete(Registration).where(Registration.id == registration.id)
        ).rowcount
        if removed != 1:
            # Someone else removed it between our read and our delete
            raise NotRegistered("Registration no longer exists")

        self._release_seat(tournament_id)
        return snapshot

    def remove(self, tournament_id: int, user_id: int) -> dict:
        registration = self.find(tournament_id, user_id)
        if registration is None:
            raise NotRegistered("Not registered for this tournament")
        return self._delete(registration)

    def remove_by_id(self, tournament_id: int, registration_id: int) -> dict:
        registration = db.session.get(Registration, registration_id)
        if registration is None or registration.tournament_id != tournament_id:
            raise NotFound("Participant not found in this tournament")
        return self._delete(registration)

    def remove_all_for_user(self, user_id: int) -> List[dict]:
        removed = []
        for registration in Registration.query.filter_by(user_id=user_id).all():
            removed.append(self._delete(registration))
        return removed

    def list_by_tournament(self, tournament_id: int) -> List[Tuple[Registration, str]]:
        """Registrations with the player's username, oldest first."""
        return (
            db.session.query(Registration, User.username)
            .join(User, Registration.user_id == User.id)
            .filter(Registration.tournament_id == tournament_id)
            .order_by(Registration.registration_date.asc(), Registration.id.asc())
            .all()
        )

    def list_by_user(self, user_id: int) -> List[Tuple[Tournament, Registration]]:
        """Tournaments a user holds a seat in, latest start first."""
        return (
            db.session.query(Tournament, Registration)
            .join(Registration, Registration.tournament_id == Tournament.id)
            .filter(Registration.user_id == user_id)
            .order_by(Tournament.start_date.desc(), Tournament.id.desc())
            .all()
        )

    def recount(self, tournament: Tournament) -> int:
        """Rewrite the cached counter from the ledger; returns the drift corrected."""
        actual = self.count(tournament.id)
        drift = actual - (tournament.current_participants or 0)
        if drift:
            logger.warning(
                f"Tournament {tournament.id} counter drifted by {drift} "
                f"(cached {tournament.current_participants}, ledger {actual})"
            )
            tournament.current_participants = actual
        return drift
