"""
Pytest configuration and fixtures for the Kubbz API tests.
"""
import os
import sys
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'

from kubbz.app import create_app
from kubbz.models import db, User, Tournament
from kubbz.publisher import EventPublisher
from kubbz.tournament_catalog import TournamentCatalog, TournamentFields
from kubbz.registration_ledger import RegistrationLedger
from kubbz.registration_service import RegistrationService
from kubbz.participant_query import ParticipantQuery
from kubbz.accounts import AccountService
from shared.lifecycle import utcnow

NOW = datetime(2024, 5, 1, 12, 0)
PASSWORD = 'kubb-secret'


class FrozenClock:
    """Callable clock pinned to a settable instant."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def tournament_fields(now: datetime = NOW, **overrides) -> TournamentFields:
    values = dict(
        name='Spring Kubb Open',
        description='Annual club tournament',
        location='Central Park',
        maps_link='https://maps.example.com/central-park',
        start_date=now + timedelta(days=31, hours=-2),
        end_date=now + timedelta(days=31, hours=6),
        registration_deadline=now + timedelta(days=24),
        max_participants=8,
        fee=Decimal('10.00'),
    )
    values.update(overrides)
    return TournamentFields(**values)


def tournament_payload(**overrides) -> dict:
    """JSON body for POST /api/tournaments relative to the real clock."""
    now = utcnow()
    payload = {
        'name': 'Spring Kubb Open',
        'description': 'Annual club tournament',
        'location': 'Central Park',
        'maps_link': 'https://maps.example.com/central-park',
        'start_date': (now + timedelta(days=30)).isoformat() + 'Z',
        'end_date': (now + timedelta(days=30, hours=8)).isoformat() + 'Z',
        'registration_deadline': (now + timedelta(days=20)).isoformat() + 'Z',
        'max_participants': 8,
        'fee': 10,
    }
    payload.update(overrides)
    return payload


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client bound to the per-test app context."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Push a fresh app context (session, g) and start from empty tables."""
    with app.app_context():
        # Clear all tables before each test
        db.session.remove()

        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def publisher(mocker):
    """EventPublisher backed by a mock Redis client."""
    return EventPublisher(redis_client=mocker.MagicMock())


@pytest.fixture
def catalog(db_session, clock, publisher):
    return TournamentCatalog(publisher, clock)


@pytest.fixture
def ledger(db_session):
    return RegistrationLedger()


@pytest.fixture
def service(catalog, ledger, publisher, clock):
    return RegistrationService(catalog, ledger, publisher, clock)


@pytest.fixture
def query(catalog, ledger, clock):
    return ParticipantQuery(catalog, ledger, clock)


@pytest.fixture
def accounts(service):
    return AccountService(service)


@pytest.fixture
def make_user(db_session):
    """Factory creating users directly in the database."""
    counter = {'n': 0}

    def _make_user(username: str = None, is_admin: bool = False, points: int = 0, season_points: int = 0) -> User:
        counter['n'] += 1
        username = username or f'player{counter["n"]}'
        user = User(
            username=username,
            email=f'{username}@example.com',
            is_admin=is_admin,
            points=points,
            season_points=season_points
        )
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def sample_tournament(catalog) -> Tournament:
    """A tournament opening for registration relative to the frozen clock."""
    return catalog.create(tournament_fields())


@pytest.fixture
def admin(make_user) -> User:
    return make_user('admin', is_admin=True)


@pytest.fixture
def player(make_user) -> User:
    return make_user('alice')


def login(client, user: User):
    response = client.post('/api/auth/login', json={'email': user.email, 'password': PASSWORD})
    assert response.status_code == 200, response.get_json()
    return response


@pytest.fixture
def admin_client(client, admin):
    login(client, admin)
    return client


@pytest.fixture
def player_client(client, player):
    login(client, player)
    return client
