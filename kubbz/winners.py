import logging
from datetime import date, datetime
from typing import List

from .models import db, User, Tournament, Winner
from .storage import atomic, retry_read_once
from .tournament_catalog import parse_timestamp
from shared.errors import ValidationError, NotFound, Forbidden

logger = logging.getLogger(__name__)


def parse_win_date(value) -> date:
    """Accept a calendar date or a full ISO timestamp; the whole string must parse."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("win_date is required")
    text = value.strip()
    if 'T' in text or ' ' in text:
        return parse_timestamp(text).date()
    return date.fromisoformat(text)


class WinnerGallery:
    """Hall of fame: tournament and season winners."""

    @retry_read_once
    def list(self) -> List[Winner]:
        return Winner.query.order_by(Winner.win_date.desc(), Winner.id.desc()).all()

    def add(self, data: dict, requester_is_admin: bool) -> Winner:
        if not requester_is_admin:
            raise Forbidden("Only administrators can add winners")

        errors = {}
        try:
            win_date = parse_win_date(data.get('win_date'))
        except ValueError as e:
            errors['win_date'] = f"Invalid date: {e}"

        season_number = data.get('season_number')
        if season_number is not None:
            if isinstance(season_number, bool) or not isinstance(season_number, int) or season_number < 1:
                errors['season_number'] = "Season number must be a positive integer"

        user_id = data.get('user_id')
        if user_id is None:
            errors['user_id'] = "This field is required"
        elif isinstance(user_id, bool) or not isinstance(user_id, int):
            errors['user_id'] = "User id must be an integer"
        tournament_id = data.get('tournament_id')
        if tournament_id is not None and (isinstance(tournament_id, bool) or not isinstance(tournament_id, int)):
            errors['tournament_id'] = "Tournament id must be an integer"
        picture_url = data.get('picture_url')
        if picture_url is not None and not isinstance(picture_url, str):
            errors['picture_url'] = "Picture URL must be a string"
        if errors:
            raise ValidationError(errors)

        if db.session.get(User, user_id) is None:
            raise NotFound("User not found")
        if tournament_id is not None and db.session.get(Tournament, tournament_id) is None:
            raise NotFound("Tournament not found")

        with atomic('add winner'):
            winner = Winner(
                user_id=user_id,
                tournament_id=tournament_id,
                season_number=season_number,
                win_date=win_date,
                picture_url=picture_url or None
            )
            db.session.add(winner)

        logger.info(f"Recorded winner {winner.id}: user {user_id}, tournament {tournament_id}")
        return winner

    def delete(self, winner_id: int, requester_is_admin: bool):
        if not requester_is_admin:
            raise Forbidden("Only administrators can delete winners")

        with atomic('delete winner'):
            winner = db.session.get(Winner, winner_id)
            if winner is None:
                raise NotFound("Winner not found")
            db.session.delete(winner)

        logger.info(f"Deleted winner {winner_id}")
