from typing import List

from .models import User
from .storage import retry_read_once


class Leaderboard:
    """Player rankings by accumulated points."""

    @retry_read_once
    def standings(self, season: bool = False) -> List[dict]:
        column = User.season_points if season else User.points
        users = User.query.order_by(column.desc(), User.username.asc()).all()

        return [
            {
                'userId': user.id,
                'userName': user.username,
                'points': (user.season_points if season else user.points) or 0,
                'avatar': user.avatar or '',
                'ranking': position,
            }
            for position, user in enumerate(users, start=1)
        ]
