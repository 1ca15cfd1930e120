"""Tests for the DrawSession state machine.

Tests universal correctness properties:
- Binding integrity
- No draw before reveal
- Draw ordering and exhaustion
- Reset guard
- End-to-end round
"""

import threading

import pytest
from hypothesis import given, settings, strategies as st

from fairdraw.config import Settings
from fairdraw.engine import DrawEventType, DrawSession, Phase, derive, digest
from fairdraw.utils.errors import (
    AlreadyCommittedError,
    AlreadyRevealedError,
    DeckExhaustedError,
    InvalidPayloadError,
    NotCommittedError,
    NotRevealedError,
    RoundInProgressError,
    SeedMismatchError,
    UnauthorizedError,
)
from tests.conftest import AUTHORITY, DECK_SIZE, PLAYER, SECRET


def draw_all(session: DrawSession, caller: str = PLAYER) -> list[int]:
    return [session.draw(caller) for _ in range(session.remaining())]


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    def test_fresh_session(self, session):
        assert session.phase is Phase.IDLE
        assert session.remaining() == DECK_SIZE
        assert session.get_permutation() == ()
        assert session.drawn_cards() == ()
        assert session.round_number == 1
        assert session.authority == AUTHORITY

    def test_default_deck_size(self):
        assert DrawSession(authority=AUTHORITY).remaining() == 52

    @pytest.mark.parametrize("bad", [0, -3, 2**32 + 1])
    def test_invalid_deck_size(self, bad):
        with pytest.raises(InvalidPayloadError):
            DrawSession(authority=AUTHORITY, deck_size=bad)

    @pytest.mark.parametrize("bad", ["", "   "])
    def test_invalid_authority(self, bad):
        with pytest.raises(InvalidPayloadError):
            DrawSession(authority=bad)

    def test_from_settings(self):
        session = DrawSession.from_settings(Settings(authority="house", deck_size=10))
        assert session.authority == "house"
        assert session.deck_size == 10

    def test_from_environment(self, monkeypatch, fresh_settings):
        monkeypatch.setenv("FAIRDRAW_AUTHORITY", "env-house")
        monkeypatch.setenv("FAIRDRAW_DECK_SIZE", "20")
        session = DrawSession.from_settings()
        assert session.authority == "env-house"
        assert session.remaining() == 20


# =============================================================================
# Access Guard
# =============================================================================


class TestAuthorization:
    def test_commit_requires_authority(self, session):
        with pytest.raises(UnauthorizedError) as exc_info:
            session.commit(PLAYER, digest(SECRET))
        assert exc_info.value.details == {"caller": PLAYER, "operation": "commit"}
        assert session.phase is Phase.IDLE

    def test_reveal_requires_authority(self, committed_session):
        with pytest.raises(UnauthorizedError):
            committed_session.reveal(PLAYER, SECRET)
        assert committed_session.phase is Phase.COMMITTED

    def test_reset_requires_authority(self, session):
        with pytest.raises(UnauthorizedError):
            session.reset(PLAYER)
        assert session.round_number == 1

    def test_unauthorized_checked_before_phase(self, revealed_session):
        """A non-authority gets Unauthorized, not a phase error."""
        with pytest.raises(UnauthorizedError):
            revealed_session.commit(PLAYER, digest(SECRET))

    def test_draw_open_to_anyone(self, revealed_session):
        revealed_session.draw(PLAYER)
        revealed_session.draw("someone-else")
        revealed_session.draw(AUTHORITY)
        assert revealed_session.remaining() == DECK_SIZE - 3


# =============================================================================
# Commit / Reveal
# =============================================================================


class TestCommitReveal:
    def test_commit(self, session):
        session.commit(AUTHORITY, digest(SECRET))
        assert session.phase is Phase.COMMITTED
        assert session.snapshot().committed_digest == digest(SECRET).hex()
        assert session.get_permutation() == ()

    def test_commit_twice(self, committed_session):
        with pytest.raises(AlreadyCommittedError):
            committed_session.commit(AUTHORITY, digest(b"second"))

    def test_reveal_without_commit(self, session):
        with pytest.raises(NotCommittedError):
            session.reveal(AUTHORITY, SECRET)
        assert session.phase is Phase.IDLE

    def test_reveal_returns_permutation(self, committed_session):
        permutation = committed_session.reveal(AUTHORITY, SECRET)
        assert permutation == tuple(derive(SECRET, DECK_SIZE))
        assert committed_session.get_permutation() == permutation
        assert committed_session.phase is Phase.REVEALED
        assert committed_session.remaining() == DECK_SIZE

    def test_reveal_twice(self, revealed_session):
        with pytest.raises(AlreadyRevealedError):
            revealed_session.reveal(AUTHORITY, SECRET)

    @given(wrong=st.binary(min_size=0, max_size=32).filter(lambda s: s != SECRET))
    @settings(max_examples=50)
    def test_binding_integrity(self, wrong):
        """Property: only the committed secret reveals; others change nothing."""
        session = DrawSession(authority=AUTHORITY, deck_size=DECK_SIZE)
        session.commit(AUTHORITY, digest(SECRET))

        with pytest.raises(SeedMismatchError):
            session.reveal(AUTHORITY, wrong)
        assert session.phase is Phase.COMMITTED
        assert session.get_permutation() == ()

        session.reveal(AUTHORITY, SECRET)
        assert session.phase is Phase.REVEALED


# =============================================================================
# Draw
# =============================================================================


class TestDraw:
    def test_draw_before_commit(self, session):
        with pytest.raises(NotRevealedError):
            session.draw(PLAYER)

    def test_draw_before_reveal(self, committed_session):
        with pytest.raises(NotRevealedError):
            committed_session.draw(PLAYER)
        assert committed_session.remaining() == DECK_SIZE

    def test_draw_order_and_exhaustion(self, revealed_session):
        expected = derive(SECRET, DECK_SIZE)

        first = revealed_session.draw(PLAYER)
        assert first == expected[0]
        assert revealed_session.phase is Phase.DRAWING

        rest = draw_all(revealed_session)
        assert [first] + rest == expected
        assert revealed_session.phase is Phase.EXHAUSTED
        assert revealed_session.remaining() == 0
        assert revealed_session.drawn_cards() == tuple(expected)

        with pytest.raises(DeckExhaustedError):
            revealed_session.draw(PLAYER)
        assert revealed_session.remaining() == 0

    @given(secret=st.binary(min_size=1, max_size=32), n=st.integers(min_value=1, max_value=30))
    @settings(max_examples=40)
    def test_draws_follow_permutation(self, secret, n):
        """Property: draws return derive(s, n) left to right, never repeating."""
        session = DrawSession(authority=AUTHORITY, deck_size=n)
        session.commit(AUTHORITY, digest(secret))
        session.reveal(AUTHORITY, secret)

        drawn = draw_all(session)
        assert drawn == derive(secret, n)
        assert len(set(drawn)) == n
        with pytest.raises(DeckExhaustedError):
            session.draw(PLAYER)

    def test_single_card_deck(self):
        session = DrawSession(authority=AUTHORITY, deck_size=1)
        session.commit(AUTHORITY, digest(b"one"))
        session.reveal(AUTHORITY, b"one")
        assert session.draw(PLAYER) == 0
        assert session.phase is Phase.EXHAUSTED


# =============================================================================
# Reset
# =============================================================================


class TestReset:
    def test_reset_from_idle(self, session):
        session.reset(AUTHORITY)
        assert session.phase is Phase.IDLE
        assert session.round_number == 2
        assert session.remaining() == DECK_SIZE

    def test_reset_after_commit_fails(self, committed_session):
        with pytest.raises(RoundInProgressError):
            committed_session.reset(AUTHORITY)
        assert committed_session.phase is Phase.COMMITTED

    def test_reset_after_reveal_fails(self, revealed_session):
        with pytest.raises(RoundInProgressError):
            revealed_session.reset(AUTHORITY)

    @pytest.mark.parametrize("drawn", range(1, DECK_SIZE))
    def test_reset_mid_round_fails(self, revealed_session, drawn):
        """Property: reset fails while 0 < cursor < n."""
        for _ in range(drawn):
            revealed_session.draw(PLAYER)

        with pytest.raises(RoundInProgressError) as exc_info:
            revealed_session.reset(AUTHORITY)
        assert exc_info.value.details["remaining"] == DECK_SIZE - drawn
        assert revealed_session.remaining() == DECK_SIZE - drawn
        assert revealed_session.phase is Phase.DRAWING

    def test_reset_after_exhaustion(self, revealed_session):
        draw_all(revealed_session)
        revealed_session.reset(AUTHORITY)

        assert revealed_session.phase is Phase.IDLE
        assert revealed_session.remaining() == DECK_SIZE
        assert revealed_session.get_permutation() == ()
        assert revealed_session.drawn_cards() == ()
        assert revealed_session.snapshot().committed_digest is None

    def test_new_round_accepts_new_commitment(self, revealed_session):
        draw_all(revealed_session)
        revealed_session.reset(AUTHORITY)

        revealed_session.commit(AUTHORITY, digest(b"next"))
        revealed_session.reveal(AUTHORITY, b"next")
        assert revealed_session.get_permutation() == tuple(derive(b"next", DECK_SIZE))


# =============================================================================
# End-to-end
# =============================================================================


class TestEndToEnd:
    def test_four_card_round(self):
        session = DrawSession(authority=AUTHORITY, deck_size=4)
        recorder = []
        session.subscribe({DrawEventType.CARD_DRAWN}, recorder.append)

        session.commit(AUTHORITY, digest("x"))
        assert session.phase is Phase.COMMITTED

        permutation = session.reveal(AUTHORITY, "x")
        assert permutation == tuple(derive("x", 4)) == (1, 0, 3, 2)
        assert sorted(permutation) == [0, 1, 2, 3]
        assert session.phase is Phase.REVEALED

        drawn = [session.draw(PLAYER) for _ in range(4)]
        assert drawn == list(permutation)
        assert [e.data["card"] for e in recorder] == drawn

        with pytest.raises(DeckExhaustedError):
            session.draw(PLAYER)

        session.reset(AUTHORITY)
        assert session.remaining() == 4
        assert session.phase is Phase.IDLE


class TestConcurrency:
    def test_parallel_draws_never_repeat(self):
        n = 200
        session = DrawSession(authority=AUTHORITY, deck_size=n)
        session.commit(AUTHORITY, digest(b"threads"))
        session.reveal(AUTHORITY, b"threads")

        results: list[int] = []
        results_lock = threading.Lock()

        def worker(name: str) -> None:
            for _ in range(n // 4):
                card = session.draw(name)
                with results_lock:
                    results.append(card)

        threads = [threading.Thread(target=worker, args=(f"p{i}",)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == list(range(n))
        assert session.drawn_cards() == tuple(derive(b"threads", n))
        assert session.phase is Phase.EXHAUSTED
