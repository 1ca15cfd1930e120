"""Independent verification of a finished (or partially drawn) round.

Uses only the published values and the canonical permutation algorithm, so
any third party can run it without access to the session.
"""

import hmac
from dataclasses import dataclass
from typing import Optional, Sequence

from fairdraw.engine.permutation import (
    derive,
    digest,
    to_digest_bytes,
    to_secret_bytes,
    validate_deck_size,
)
from fairdraw.utils.errors import InvalidPayloadError


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of ``verify_round``."""

    valid: bool
    error: Optional[str] = None
    expected_permutation: tuple[int, ...] = ()

    def __bool__(self) -> bool:
        return self.valid


def verify_round(
    secret: bytes | str,
    committed_digest: bytes | str,
    deck_size: int,
    permutation: Optional[Sequence[int]] = None,
    drawn_cards: Optional[Sequence[int]] = None,
) -> VerificationResult:
    """
    공개된 값으로 라운드 공정성 검증.

    Args:
        secret: Secret disclosed at reveal
        committed_digest: Digest published at commit
        deck_size: Deck size of the round
        permutation: Permutation exposed by the session, if checked
        drawn_cards: Cards observed via draw events, in draw order, if checked

    Returns:
        VerificationResult; ``error`` names the first failed check.
        Malformed inputs are reported the same way, never raised.
    """
    # 1. 커밋 해시 검증
    try:
        committed = to_digest_bytes(committed_digest)
    except InvalidPayloadError as e:
        return VerificationResult(False, f"Malformed committed digest: {e.message}")

    try:
        raw = to_secret_bytes(secret)
    except InvalidPayloadError as e:
        return VerificationResult(False, f"Malformed secret: {e.message}")

    try:
        validate_deck_size(deck_size)
    except InvalidPayloadError as e:
        return VerificationResult(False, f"Invalid deck size: {e.message}")

    if not hmac.compare_digest(digest(raw), committed):
        return VerificationResult(False, "Secret does not match committed digest")

    # 2. 동일한 덱 순서 재현
    expected = tuple(derive(raw, deck_size))

    if permutation is not None and tuple(permutation) != expected:
        return VerificationResult(False, "Permutation mismatch", expected)

    if drawn_cards is not None:
        drawn = tuple(drawn_cards)
        if len(drawn) > len(expected):
            return VerificationResult(False, "More cards drawn than the deck holds", expected)
        if drawn != expected[: len(drawn)]:
            return VerificationResult(False, "Drawn cards diverge from permutation", expected)

    return VerificationResult(True, None, expected)
