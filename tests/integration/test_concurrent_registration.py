"""
Concurrent registration against a file-backed database.
Players race for the last seat from separate threads and connections.
"""
import threading

import pytest

from conftest import PASSWORD, tournament_fields
from kubbz.app import create_app
from kubbz.config import config, TestingConfig
from kubbz.models import db, User, Tournament, Registration
from shared.errors import KubbzError
from shared.lifecycle import utcnow

PLAYERS = 8


@pytest.fixture
def file_app(tmp_path, mocker):
    """App whose connections share one SQLite file instead of a single in-memory pool."""

    class FileBackedConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'kubbz.db'}"

    mocker.patch.dict(config, {'file': FileBackedConfig})
    app = create_app('file')

    yield app

    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def _seed(app, max_participants):
    with app.app_context():
        tournament = app.catalog.create(tournament_fields(now=utcnow(), max_participants=max_participants))
        for n in range(PLAYERS):
            user = User(username=f'racer{n}', email=f'racer{n}@example.com')
            user.set_password(PASSWORD)
            db.session.add(user)
        db.session.commit()
        return tournament.id, [user.id for user in User.query.order_by(User.id).all()]


def _race(app, tournament_id, user_ids):
    barrier = threading.Barrier(len(user_ids))
    outcomes = []
    lock = threading.Lock()

    def attempt(user_id):
        with app.app_context():
            barrier.wait()
            try:
                app.registrations.register(tournament_id, user_id)
                outcome = 'ok'
            except KubbzError as e:
                outcome = e.kind
            with lock:
                outcomes.append(outcome)

    threads = [threading.Thread(target=attempt, args=(user_id,)) for user_id in user_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return outcomes


def _counter_and_ledger(app, tournament_id):
    with app.app_context():
        tournament = db.session.get(Tournament, tournament_id)
        registered = Registration.query.filter_by(tournament_id=tournament_id).count()
        return tournament.current_participants, registered


class TestConcurrentRegistration:
    """Tests for racing register calls."""

    def test_single_seat_has_one_winner(self, file_app):
        """Only one of several simultaneous callers gets the final seat."""
        tournament_id, user_ids = _seed(file_app, max_participants=1)

        outcomes = _race(file_app, tournament_id, user_ids)

        assert len(outcomes) == PLAYERS
        assert outcomes.count('ok') == 1
        assert set(outcomes) <= {'ok', 'tournament_full', 'conflict'}
        assert _counter_and_ledger(file_app, tournament_id) == (1, 1)

    def test_counter_matches_ledger_under_contention(self, file_app):
        tournament_id, user_ids = _seed(file_app, max_participants=3)

        outcomes = _race(file_app, tournament_id, user_ids)

        assert outcomes.count('ok') == 3
        assert _counter_and_ledger(file_app, tournament_id) == (3, 3)
