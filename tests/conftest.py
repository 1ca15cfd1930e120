"""Shared fixtures for draw engine tests."""

import pytest

from fairdraw.config import get_settings
from fairdraw.engine import DrawEvent, DrawEventType, DrawSession, digest
from fairdraw.logging_config import configure_logging

AUTHORITY = "dealer"
PLAYER = "player-1"
SECRET = b"round-secret-001"
DECK_SIZE = 8


class EventRecorder:
    """Collects every event published to a session."""

    def __init__(self):
        self.events: list[DrawEvent] = []

    def __call__(self, event: DrawEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: DrawEventType) -> list[DrawEvent]:
        return [e for e in self.events if e.event_type is event_type]


@pytest.fixture(scope="session", autouse=True)
def quiet_logging():
    configure_logging(log_level="WARNING")


@pytest.fixture
def fresh_settings():
    """Drop the cached settings so env changes are picked up."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def session() -> DrawSession:
    """Fresh idle session with a small deck."""
    return DrawSession(authority=AUTHORITY, deck_size=DECK_SIZE)


@pytest.fixture
def recorder(session: DrawSession) -> EventRecorder:
    rec = EventRecorder()
    session.events.subscribe_all(rec)
    return rec


@pytest.fixture
def committed_session(session: DrawSession) -> DrawSession:
    session.commit(AUTHORITY, digest(SECRET))
    return session


@pytest.fixture
def revealed_session(committed_session: DrawSession) -> DrawSession:
    committed_session.reveal(AUTHORITY, SECRET)
    return committed_session
