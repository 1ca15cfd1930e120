"""Commitment Ledger.

Holds the committed digest and the disclosed secret for the current round
and enforces commit -> reveal ordering plus the binding check
``SHA256(secret) == committed_digest``.

The ledger validates and records; it never publishes events and never
touches the draw cursor. ``DrawSession`` composes it with the permutation
engine so that a reveal either fully applies or leaves the round untouched.
"""

from __future__ import annotations

import hmac
from datetime import datetime, timezone

from fairdraw.engine.permutation import derive, digest, to_digest_bytes, to_secret_bytes
from fairdraw.engine.state import Phase, Round
from fairdraw.utils.errors import (
    AlreadyCommittedError,
    AlreadyRevealedError,
    NotCommittedError,
    SeedMismatchError,
)


class CommitmentLedger:
    """Commit/reveal bookkeeping over a single ``Round``."""

    def __init__(self, round_: Round):
        self._round = round_

    @property
    def committed_digest(self) -> bytes | None:
        return self._round.committed_digest

    @property
    def disclosed_secret(self) -> bytes | None:
        return self._round.disclosed_secret

    def bind(self, round_: Round) -> None:
        """Point the ledger at a fresh round after a reset."""
        self._round = round_

    def commit(self, value: bytes | str) -> bytes:
        """
        Record the committed digest.

        Args:
            value: 32-byte digest or its 64-char hex form

        Returns:
            The normalized digest bytes

        Raises:
            AlreadyCommittedError: phase is not Idle
            InvalidPayloadError: digest is malformed
        """
        phase = self._round.phase
        if phase is not Phase.IDLE:
            raise AlreadyCommittedError(phase.value)

        committed = to_digest_bytes(value)
        self._round.committed_digest = committed
        self._round.committed_at = datetime.now(timezone.utc)
        return committed

    def verify_secret(self, secret: bytes | str) -> bool:
        """Check a candidate secret against the commitment without side effects."""
        committed = self._round.committed_digest
        if committed is None:
            return False
        return hmac.compare_digest(digest(secret), committed)

    def reveal(self, secret: bytes | str) -> tuple[int, ...]:
        """
        Disclose the secret and compute the round permutation.

        All checks run, and the permutation is computed, before any field is
        written, so a failure leaves the round exactly as it was.

        Returns:
            The derived permutation

        Raises:
            NotCommittedError: phase is Idle
            AlreadyRevealedError: phase is Revealed or later
            SeedMismatchError: SHA256(secret) != committed digest
        """
        phase = self._round.phase
        if phase is Phase.IDLE:
            raise NotCommittedError()
        if phase is not Phase.COMMITTED:
            raise AlreadyRevealedError(phase.value)

        raw = to_secret_bytes(secret)
        committed = self._round.committed_digest
        actual = digest(raw)
        if not hmac.compare_digest(actual, committed):
            raise SeedMismatchError(expected=committed.hex(), actual=actual.hex())

        permutation = tuple(derive(raw, self._round.deck_size))

        self._round.disclosed_secret = raw
        self._round.permutation = permutation
        self._round.revealed_at = datetime.now(timezone.utc)
        return permutation
