"""Provably fair draw engine: commit-reveal, hash-chain shuffle, draw session."""

from fairdraw.engine.commitment import CommitmentLedger
from fairdraw.engine.events import DrawEvent, DrawEventBus, DrawEventType
from fairdraw.engine.guard import AccessGuard
from fairdraw.engine.permutation import (
    deck_order_hash,
    derive,
    digest,
    encode_index,
    generate_secret,
    make_commitment,
)
from fairdraw.engine.session import DEFAULT_DECK_SIZE, DrawSession
from fairdraw.engine.state import Phase, Round, RoundSnapshot
from fairdraw.engine.verify import VerificationResult, verify_round

__all__ = [
    "AccessGuard",
    "CommitmentLedger",
    "DEFAULT_DECK_SIZE",
    "DrawEvent",
    "DrawEventBus",
    "DrawEventType",
    "DrawSession",
    "Phase",
    "Round",
    "RoundSnapshot",
    "VerificationResult",
    "deck_order_hash",
    "derive",
    "digest",
    "encode_index",
    "generate_secret",
    "make_commitment",
    "verify_round",
]
