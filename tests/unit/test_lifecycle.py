"""
Unit tests for tournament status derivation and the event envelope.
"""
import json
from datetime import datetime

import pytest

from shared.lifecycle import TournamentStatus, derive_status, registration_open, utcnow
from shared.events import EventType, tournament_event, registration_event
from shared.errors import (
    KubbzError, ValidationError, NotFound, Conflict, AlreadyRegistered,
    RegistrationClosed, TournamentFull, NotRegistered, Forbidden, Unavailable
)

START = datetime(2024, 6, 1, 10, 0)
END = datetime(2024, 6, 1, 18, 0)


class TestDeriveStatus:
    """Tests for derive_status."""

    def test_before_start_is_upcoming(self):
        assert derive_status(datetime(2024, 5, 1), START, END) == TournamentStatus.UPCOMING

    def test_inside_window_is_ongoing(self):
        assert derive_status(datetime(2024, 6, 1, 12, 0), START, END) == TournamentStatus.ONGOING

    def test_after_end_is_completed(self):
        assert derive_status(datetime(2024, 7, 1), START, END) == TournamentStatus.COMPLETED

    @pytest.mark.parametrize("now", [START, END])
    def test_bounds_are_inclusive(self, now):
        assert derive_status(now, START, END) == TournamentStatus.ONGOING

    def test_zero_length_window(self):
        """A zero-length tournament is ongoing only at its single instant."""
        assert derive_status(START, START, START) == TournamentStatus.ONGOING
        assert derive_status(datetime(2024, 6, 1, 10, 0, 1), START, START) == TournamentStatus.COMPLETED

    def test_status_values(self):
        assert [s.value for s in TournamentStatus] == ["upcoming", "ongoing", "completed"]


class TestRegistrationOpen:

    def test_open_until_deadline_inclusive(self):
        deadline = datetime(2024, 5, 25)
        assert registration_open(datetime(2024, 5, 24), deadline) is True
        assert registration_open(deadline, deadline) is True
        assert registration_open(datetime(2024, 5, 25, 0, 0, 1), deadline) is False

    def test_utcnow_is_naive(self):
        assert utcnow().tzinfo is None


class TestEvents:
    """Tests for the Event envelope."""

    def test_to_dict(self):
        event = tournament_event(EventType.TOURNAMENT_CREATED, 7, "Spring Open")
        data = event.to_dict()
        assert data["type"] == "tournament.created"
        assert data["tournament_id"] == 7
        assert data["data"] == {"name": "Spring Open"}
        assert data["timestamp"].endswith("Z")

    def test_registration_payload(self):
        event = registration_event(EventType.REGISTRATION_CREATED, 3, 11, 42, 5)
        payload = json.loads(event.to_json())
        assert payload["type"] == "registration.created"
        assert payload["data"] == {
            "user_id": 11,
            "registration_id": 42,
            "current_participants": 5
        }

    def test_lifecycle_events_reach_global_channel(self):
        event = tournament_event(EventType.TOURNAMENT_DELETED, 3)
        assert event.channels == ["tournament:3:events", "global:announcements"]

    def test_registration_events_stay_on_tournament_channel(self):
        event = registration_event(EventType.REGISTRATION_WITHDRAWN, 3, 1, 2, 0)
        assert event.channels == ["tournament:3:events"]
        assert json.loads(event.to_json())["type"] == "registration.withdrawn"


class TestErrors:
    """Tests for the error taxonomy."""

    @pytest.mark.parametrize("error_class, status_code", [
        (NotFound, 404),
        (NotRegistered, 404),
        (Conflict, 409),
        (AlreadyRegistered, 409),
        (RegistrationClosed, 409),
        (TournamentFull, 409),
        (Forbidden, 403),
        (Unavailable, 503),
    ])
    def test_status_codes(self, error_class, status_code):
        assert error_class("boom").status_code == status_code

    def test_validation_error_lists_fields(self):
        error = ValidationError({"name": "Name is required", "fee": "Fee cannot be negative"})
        assert error.status_code == 400
        assert "fee" in str(error) and "name" in str(error)
        assert error.to_dict()["fields"]["name"] == "Name is required"

    def test_already_registered_is_a_conflict(self):
        assert isinstance(AlreadyRegistered(), Conflict)
        assert isinstance(NotRegistered(), NotFound)

    def test_default_message(self):
        error = TournamentFull()
        assert error.message == "Tournament full"
        assert error.to_dict() == {"error": "Tournament full", "kind": "tournament_full"}

    def test_conflict_names_field(self):
        error = Conflict("This email is already registered", field="email")
        assert error.to_dict()["fields"] == {"email": "This email is already registered"}
        assert isinstance(error, KubbzError)
