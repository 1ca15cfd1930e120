"""Round state models for the draw engine.

``Round`` is the single mutable owner of round state and is only touched by
``DrawSession`` under its lock. ``RoundSnapshot`` is the immutable public view
handed to callers; collections use tuple instead of list.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from fairdraw.engine.permutation import deck_order_hash


class Phase(str, Enum):
    """Round lifecycle phase."""

    IDLE = "idle"
    COMMITTED = "committed"
    REVEALED = "revealed"
    DRAWING = "drawing"
    EXHAUSTED = "exhausted"

    @property
    def has_permutation(self) -> bool:
        return self in (Phase.REVEALED, Phase.DRAWING, Phase.EXHAUSTED)


@dataclass
class Round:
    """One commit -> reveal -> draw* lifecycle.

    ``phase`` is derived from the other fields so it can never drift from
    them: no digest means Idle, no permutation means Committed, and the
    cursor position decides between Revealed, Drawing and Exhausted.
    """

    deck_size: int
    round_number: int = 1
    committed_digest: bytes | None = None
    disclosed_secret: bytes | None = None
    permutation: tuple[int, ...] | None = None
    cursor: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    committed_at: datetime | None = None
    revealed_at: datetime | None = None

    @property
    def phase(self) -> Phase:
        if self.committed_digest is None:
            return Phase.IDLE
        if self.permutation is None:
            return Phase.COMMITTED
        if self.cursor >= self.deck_size:
            return Phase.EXHAUSTED
        if self.cursor > 0:
            return Phase.DRAWING
        return Phase.REVEALED

    @property
    def remaining(self) -> int:
        return self.deck_size - self.cursor

    @property
    def drawn(self) -> tuple[int, ...]:
        if self.permutation is None:
            return ()
        return self.permutation[: self.cursor]

    def snapshot(self) -> "RoundSnapshot":
        return RoundSnapshot(
            round_number=self.round_number,
            phase=self.phase,
            deck_size=self.deck_size,
            cursor=self.cursor,
            committed_digest=self.committed_digest.hex() if self.committed_digest else None,
            disclosed_secret=self.disclosed_secret.hex() if self.disclosed_secret is not None else None,
            permutation=self.permutation or (),
            created_at=self.created_at,
            committed_at=self.committed_at,
            revealed_at=self.revealed_at,
        )


@dataclass(frozen=True)
class RoundSnapshot:
    """Immutable view of a round at one point in time."""

    round_number: int
    phase: Phase
    deck_size: int
    cursor: int
    committed_digest: str | None
    disclosed_secret: str | None
    permutation: tuple[int, ...]
    created_at: datetime
    committed_at: datetime | None = None
    revealed_at: datetime | None = None

    @property
    def remaining(self) -> int:
        return self.deck_size - self.cursor

    @property
    def is_revealed(self) -> bool:
        return self.phase.has_permutation

    @property
    def drawn_cards(self) -> tuple[int, ...]:
        return self.permutation[: self.cursor]

    def to_public_dict(self) -> dict[str, Any]:
        """라운드 진행 중 공개 정보."""
        return {
            "round_number": self.round_number,
            "phase": self.phase.value,
            "deck_size": self.deck_size,
            "remaining": self.remaining,
            "committed_digest": self.committed_digest,
            "drawn_cards": list(self.drawn_cards),
            "created_at": self.created_at.isoformat(),
            "committed_at": self.committed_at.isoformat() if self.committed_at else None,
        }

    def to_revealed_dict(self) -> dict[str, Any]:
        """공개 후 전체 정보 (검증용)."""
        data = self.to_public_dict()
        data.update(
            {
                "disclosed_secret": self.disclosed_secret,
                "permutation": list(self.permutation),
                "deck_order_hash": deck_order_hash(self.permutation) if self.is_revealed else None,
                "revealed_at": self.revealed_at.isoformat() if self.revealed_at else None,
            }
        )
        return data
