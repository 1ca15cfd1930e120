"""Draw Session - round state machine.

    Idle -> Committed -> Revealed -> Drawing -> Exhausted
      ^                                           |
      +------------------- reset -----------------+

``reset`` is also allowed from Idle. Once committed, a round must be either
left unplayed or drawn to the last card before it can be cleared.

Every public operation runs under one lock, validates all preconditions
before writing anything, and queues its event only after the state change
is applied. Queued events are delivered FIFO by the outermost publisher, so
an observer that calls back into the session (e.g. an auto-dealer drawing
the next card) cannot overtake the event it is handling.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Iterable, Optional, TypeVar

from fairdraw.config import Settings, get_settings
from fairdraw.engine.commitment import CommitmentLedger
from fairdraw.engine.events import DrawEvent, DrawEventBus, DrawEventType, EventHandler
from fairdraw.engine.guard import AccessGuard
from fairdraw.engine.permutation import deck_order_hash, validate_deck_size
from fairdraw.engine.state import Phase, Round, RoundSnapshot
from fairdraw.logging_config import get_logger
from fairdraw.utils.errors import (
    DeckExhaustedError,
    DrawError,
    InvalidPayloadError,
    NotRevealedError,
    RoundInProgressError,
)

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_DECK_SIZE = 52


class DrawSession:
    """Single-round provably fair draw engine.

    Args:
        authority: Principal permitted to commit, reveal and reset
        deck_size: Number of cards, fixed for the session's lifetime
        event_bus: Observer bus; a private one is created when omitted
    """

    def __init__(
        self,
        authority: str,
        deck_size: int = DEFAULT_DECK_SIZE,
        event_bus: Optional[DrawEventBus] = None,
    ):
        validate_deck_size(deck_size)
        if deck_size == 0:
            raise InvalidPayloadError("deck_size must be positive", field="deck_size")

        self._deck_size = deck_size
        self._guard = AccessGuard(authority)
        self._events = event_bus or DrawEventBus()
        self._lock = threading.RLock()
        self._pending: deque[DrawEvent] = deque()
        self._dispatching = False
        self._round = Round(deck_size=deck_size)
        self._ledger = CommitmentLedger(self._round)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        event_bus: Optional[DrawEventBus] = None,
    ) -> "DrawSession":
        """Build a session from engine settings."""
        settings = settings or get_settings()
        return cls(
            authority=settings.authority,
            deck_size=settings.deck_size,
            event_bus=event_bus,
        )

    # =========================================================================
    # Configuration / queries
    # =========================================================================

    @property
    def deck_size(self) -> int:
        return self._deck_size

    @property
    def authority(self) -> str:
        return self._guard.authority

    @property
    def events(self) -> DrawEventBus:
        return self._events

    @property
    def phase(self) -> Phase:
        with self._lock:
            return self._round.phase

    @property
    def round_number(self) -> int:
        with self._lock:
            return self._round.round_number

    def remaining(self) -> int:
        """Cards left to draw; ``deck_size`` before reveal."""
        with self._lock:
            return self._round.remaining

    def get_permutation(self) -> tuple[int, ...]:
        """Full draw order once revealed; empty before."""
        with self._lock:
            return self._round.permutation or ()

    def drawn_cards(self) -> tuple[int, ...]:
        with self._lock:
            return self._round.drawn

    def snapshot(self) -> RoundSnapshot:
        with self._lock:
            return self._round.snapshot()

    def subscribe(
        self,
        event_types: Iterable[DrawEventType],
        handler: EventHandler,
        round_number: Optional[int] = None,
    ) -> str:
        return self._events.subscribe(event_types, handler, round_number)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self._events.unsubscribe(subscription_id)

    # =========================================================================
    # Authority operations
    # =========================================================================

    def commit(self, caller: str, value: bytes | str) -> None:
        """Record the digest of a secret only the authority knows yet."""
        with self._lock:
            committed = self._run(
                "commit", caller, lambda: self._ledger.commit(value), guarded=True
            )
            digest_hex = committed.hex()
            logger.info(
                "round_committed",
                round_number=self._round.round_number,
                digest=digest_hex,
            )
            self._publish(DrawEventType.COMMITTED, {"digest": digest_hex}, caller)

    def reveal(self, caller: str, secret: bytes | str) -> tuple[int, ...]:
        """Disclose the committed secret and fix the round's draw order."""
        with self._lock:
            permutation = self._run(
                "reveal", caller, lambda: self._ledger.reveal(secret), guarded=True
            )
            order_hash = deck_order_hash(permutation)
            logger.info(
                "round_revealed",
                round_number=self._round.round_number,
                deck_order_hash=order_hash,
            )
            self._publish(
                DrawEventType.REVEALED,
                {
                    "secret": self._round.disclosed_secret.hex(),
                    "deck_order_hash": order_hash,
                },
                caller,
            )
            return permutation

    def reset(self, caller: str) -> None:
        """Start a fresh round; allowed only from Idle or Exhausted."""
        with self._lock:
            self._run("reset", caller, self._check_resettable, guarded=True)
            previous = self._round.round_number
            self._round = Round(deck_size=self._deck_size, round_number=previous + 1)
            self._ledger.bind(self._round)
            logger.info("round_reset", previous_round=previous, round_number=previous + 1)
            self._publish(DrawEventType.ROUND_RESET, {"previous_round": previous}, caller)

    # =========================================================================
    # Open operations
    # =========================================================================

    def draw(self, caller: str) -> int:
        """Return the next card of the revealed permutation."""
        with self._lock:
            self._run("draw", caller, self._check_drawable, guarded=False)
            position = self._round.cursor
            card = self._round.permutation[position]
            self._round.cursor = position + 1
            logger.debug(
                "card_drawn",
                round_number=self._round.round_number,
                caller=caller,
                card=card,
                position=position,
            )
            self._publish(
                DrawEventType.CARD_DRAWN,
                {"card": card, "position": position},
                caller,
            )
            return card

    # =========================================================================
    # Internals
    # =========================================================================

    def _check_drawable(self) -> None:
        phase = self._round.phase
        if not phase.has_permutation:
            raise NotRevealedError(phase.value)
        if phase is Phase.EXHAUSTED:
            raise DeckExhaustedError(self._deck_size)

    def _check_resettable(self) -> None:
        phase = self._round.phase
        if phase not in (Phase.IDLE, Phase.EXHAUSTED):
            raise RoundInProgressError(phase.value, self._round.remaining)

    def _run(self, operation: str, caller: str, action: Callable[[], T], guarded: bool) -> T:
        """Run ``action`` after the access check, logging any rejection."""
        try:
            if guarded:
                self._guard.authorize(caller, operation)
            return action()
        except DrawError as e:
            logger.warning(
                "operation_rejected",
                operation=operation,
                caller=caller,
                round_number=self._round.round_number,
                phase=self._round.phase.value,
                error_code=e.code,
            )
            raise

    def _publish(self, event_type: DrawEventType, data: dict, caller: str) -> None:
        self._pending.append(
            DrawEvent(
                event_type=event_type,
                round_number=self._round.round_number,
                data=data,
                caller=caller,
            )
        )
        # Nested publish from an observer callback: the outer loop delivers it.
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._pending:
                self._events.publish(self._pending.popleft())
        finally:
            self._dispatching = False
