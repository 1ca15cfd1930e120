"""
Draw Event Bus - observer notifications for round state changes.

설계 원칙:
1. Fire-and-Forget: a handler's outcome never affects the operation
2. Fan-Out: one event is delivered to every matching subscription
3. Ordered: events are published in the order operations were applied
4. At-most-once: each subscription sees each event at most once
"""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Callable, Dict, Iterable, List, Optional, Set
from uuid import uuid4

from fairdraw.logging_config import get_logger

logger = get_logger(__name__)


class DrawEventType(Enum):
    """Event types emitted by a draw session."""

    COMMITTED = auto()
    REVEALED = auto()
    CARD_DRAWN = auto()
    ROUND_RESET = auto()


@dataclass(frozen=True)
class DrawEvent:
    """
    Draw event for the event bus.

    Payloads by type:
    - COMMITTED: {"digest": hex}
    - REVEALED: {"secret": hex, "deck_order_hash": hex}
    - CARD_DRAWN: {"card": int, "position": int}
    - ROUND_RESET: {"previous_round": int}
    """

    event_type: DrawEventType
    round_number: int
    data: Dict[str, Any] = field(default_factory=dict)
    caller: Optional[str] = None
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.name,
            "round_number": self.round_number,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
            "caller": self.caller,
        }


# Type alias for event handlers
EventHandler = Callable[[DrawEvent], None]


@dataclass
class Subscription:
    """Event subscription metadata."""

    subscription_id: str
    event_types: Set[DrawEventType]
    handler: EventHandler
    round_number: Optional[int] = None  # None = all rounds
    is_active: bool = True


@dataclass
class EventMetrics:
    """Event processing metrics."""

    events_published: int = 0
    events_processed: int = 0
    events_failed: int = 0
    avg_processing_time_ms: float = 0.0
    last_event_time: Optional[datetime] = None


class DrawEventBus:
    """In-process, synchronous event bus for draw events."""

    def __init__(self):
        self._subscriptions: Dict[str, Subscription] = {}
        self._handlers_by_type: Dict[DrawEventType, List[Subscription]] = (
            defaultdict(list)
        )
        self._metrics = EventMetrics()

    def subscribe(
        self,
        event_types: Iterable[DrawEventType],
        handler: EventHandler,
        round_number: Optional[int] = None,
    ) -> str:
        """
        Subscribe to draw events.

        Args:
            event_types: Event types to listen for
            handler: Callable invoked with each matching event
            round_number: Filter for a specific round (None = all)

        Returns:
            Subscription ID for unsubscribe
        """
        subscription_id = str(uuid4())
        subscription = Subscription(
            subscription_id=subscription_id,
            event_types=set(event_types),
            handler=handler,
            round_number=round_number,
        )

        self._subscriptions[subscription_id] = subscription

        for event_type in subscription.event_types:
            self._handlers_by_type[event_type].append(subscription)

        return subscription_id

    def subscribe_all(self, handler: EventHandler) -> str:
        """Subscribe ``handler`` to every event type."""
        return self.subscribe(set(DrawEventType), handler)

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove subscription."""
        subscription = self._subscriptions.pop(subscription_id, None)
        if not subscription:
            return False

        subscription.is_active = False

        for event_type in subscription.event_types:
            handlers = self._handlers_by_type[event_type]
            self._handlers_by_type[event_type] = [
                h for h in handlers if h.subscription_id != subscription_id
            ]

        return True

    def publish(self, event: DrawEvent) -> None:
        """Deliver ``event`` to matching handlers, in subscription order."""
        for subscription in list(self._handlers_by_type.get(event.event_type, [])):
            if not subscription.is_active:
                continue

            if (
                subscription.round_number is not None
                and subscription.round_number != event.round_number
            ):
                continue

            self._safe_handler_call(subscription.handler, event)

        self._metrics.events_published += 1
        self._metrics.last_event_time = datetime.now(timezone.utc)

    def _safe_handler_call(self, handler: EventHandler, event: DrawEvent) -> None:
        """Call handler, isolating its failure from the publisher."""
        try:
            start_time = time.perf_counter()
            handler(event)
            elapsed_ms = (time.perf_counter() - start_time) * 1000

            # Update average processing time
            total = self._metrics.events_processed
            avg = self._metrics.avg_processing_time_ms
            self._metrics.avg_processing_time_ms = (avg * total + elapsed_ms) / (
                total + 1
            )
            self._metrics.events_processed += 1

        except Exception:
            self._metrics.events_failed += 1
            logger.exception(
                "event_handler_failed",
                event_type=event.event_type.name,
                event_id=event.event_id,
                round_number=event.round_number,
            )

    def get_metrics(self) -> EventMetrics:
        """Get event processing metrics."""
        return self._metrics

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)
