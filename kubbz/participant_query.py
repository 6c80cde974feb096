from typing import List

from .registration_ledger import RegistrationLedger
from .storage import retry_read_once
from .tournament_catalog import TournamentCatalog
from shared.lifecycle import utcnow


class ParticipantQuery:
    """Read-only projections for the admin dashboard and player profile."""

    def __init__(self, catalog: TournamentCatalog = None, ledger: RegistrationLedger = None, clock=utcnow):
        self.catalog = catalog or TournamentCatalog(clock=clock)
        self.ledger = ledger or RegistrationLedger()
        self.clock = clock

    @retry_read_once
    def participants_of(self, tournament_id: int) -> List[dict]:
        self.catalog.get(tournament_id)
        return [
            {
                'id': registration.id,
                'user_id': registration.user_id,
                'username': username,
                'team_name': registration.team_name,
                'registration_date': registration.registration_date.isoformat(),
            }
            for registration, username in self.ledger.list_by_tournament(tournament_id)
        ]

    @retry_read_once
    def tournaments_of(self, user_id: int) -> List[dict]:
        now = self.clock()
        results = []
        for tournament, registration in self.ledger.list_by_user(user_id):
            data = tournament.to_dict(now)
            data.update({
                'registration_id': registration.id,
                'team_name': registration.team_name,
                'registration_date': registration.registration_date.isoformat(),
            })
            results.append(data)
        return results
