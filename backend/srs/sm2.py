"""SM-2 spaced repetition scheduler.

A four-button variant of SuperMemo-2 as used by the review screens.
Reference: https://super-memory.com/english/ol/sm2.htm

Key concepts:
- Interval: days until the card is due again after a successful review.
- Ease factor (EF): the multiplier applied to the interval from the third
  consecutive success on; never below 1.3.
- Repetitions: consecutive successful reviews; reset by Again.
- Quality: 0=Again, 1=Hard, 2=Good, 3=Easy
"""

import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import IntEnum

from backend.config import settings, utcnow
from backend.errors import InvalidInput

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3

FIRST_INTERVAL = 1  # days, after the first success
SECOND_INTERVAL = 6  # days, after the second success


class Quality(IntEnum):
    """How well the card was recalled."""

    AGAIN = 0
    HARD = 1
    GOOD = 2
    EASY = 3

    @classmethod
    def parse(cls, value: object) -> "Quality":
        """Convert a raw answer value, rejecting anything outside 0-3."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInput(f"Quality must be 0, 1, 2, or 3, got {value!r}")
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidInput(f"Quality must be 0, 1, 2, or 3, got {value!r}") from exc


@dataclass(frozen=True)
class CardState:
    """The SRS state of a card."""

    interval: float = 0.0  # days
    ease_factor: float = DEFAULT_EASE_FACTOR
    repetitions: int = 0
    due: datetime | None = None

    @classmethod
    def of(cls, card: object) -> "CardState":
        """Read the scheduling fields off a card row."""
        return cls(
            interval=card.interval,  # type: ignore[attr-defined]
            ease_factor=card.ease_factor,  # type: ignore[attr-defined]
            repetitions=card.repetitions,  # type: ignore[attr-defined]
            due=card.due_date,  # type: ignore[attr-defined]
        )

    def apply_to(self, card: object) -> None:
        """Overwrite all four scheduling fields of a card row."""
        card.interval = self.interval  # type: ignore[attr-defined]
        card.ease_factor = self.ease_factor  # type: ignore[attr-defined]
        card.repetitions = self.repetitions  # type: ignore[attr-defined]
        card.due_date = self.due  # type: ignore[attr-defined]


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def update_ease(ease_factor: float, quality: Quality) -> float:
    """EF' = EF + (0.1 - (3-q) * (0.08 + (3-q) * 0.02)), floored at 1.3."""
    miss = 3 - int(quality)
    return max(MIN_EASE_FACTOR, ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))


class SM2:
    """SuperMemo-2 scheduler with an injectable clock."""

    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        hard_due_hours: float | None = None,
    ) -> None:
        self.clock = clock
        self.hard_due_hours = settings.hard_due_hours if hard_due_hours is None else hard_due_hours

    def next_state(
        self,
        state: CardState,
        quality: Quality | int,
        review_time: datetime | None = None,
    ) -> CardState:
        """Apply a review answer and return the complete new state.

        Args:
            state: Current card state.
            quality: 0=Again, 1=Hard, 2=Good, 3=Easy.
            review_time: When the review happened (defaults to the clock).

        Returns:
            A new CardState; every field replaces the previous value.
        """
        quality = Quality.parse(quality)
        review_time = review_time or self.clock()

        if quality == Quality.AGAIN:
            # Due immediately; the session requeue decides when it is shown again
            return CardState(
                interval=0.0,
                ease_factor=state.ease_factor,
                repetitions=0,
                due=review_time,
            )

        repetitions = state.repetitions + 1
        if repetitions == 1:
            interval = float(FIRST_INTERVAL)
        elif repetitions == 2:
            interval = float(SECOND_INTERVAL)
        else:
            interval = float(round_half_up(state.interval * state.ease_factor))

        ease_factor = update_ease(state.ease_factor, quality)

        # Hard cards come back within the hour; the stored interval still
        # drives the next multiplication.
        if quality == Quality.HARD and interval > 0:
            due_offset = timedelta(hours=self.hard_due_hours)
        else:
            due_offset = timedelta(days=interval)

        return CardState(
            interval=interval,
            ease_factor=ease_factor,
            repetitions=repetitions,
            due=review_time + due_offset,
        )
