"""Tests for the SM-2 scheduler."""

from datetime import datetime, timedelta

import pytest

from backend.errors import InvalidInput
from backend.srs.sm2 import (
    MIN_EASE_FACTOR,
    SM2,
    CardState,
    Quality,
    round_half_up,
    update_ease,
)

NOW = datetime(2025, 3, 1, 12, 0, 0)


class TestSM2:
    def setup_method(self) -> None:
        self.sm2 = SM2(clock=lambda: NOW, hard_due_hours=1)

    def test_again_resets(self) -> None:
        state = CardState(interval=15, ease_factor=2.6, repetitions=3)
        new = self.sm2.next_state(state, Quality.AGAIN)
        assert new.repetitions == 0
        assert new.interval == 0
        assert new.due == NOW
        # Again does not touch the ease factor
        assert new.ease_factor == 2.6

    def test_first_success_one_day(self) -> None:
        new = self.sm2.next_state(CardState(), Quality.GOOD)
        assert new.repetitions == 1
        assert new.interval == 1
        assert new.due == NOW + timedelta(days=1)

    def test_second_success_six_days(self) -> None:
        new = self.sm2.next_state(CardState(interval=1, repetitions=1), Quality.GOOD)
        assert new.repetitions == 2
        assert new.interval == 6
        assert new.due == NOW + timedelta(days=6)

    def test_third_success_multiplies(self) -> None:
        # interval=6, ef=2.5, reps=2 -> Good gives 15 days
        new = self.sm2.next_state(
            CardState(interval=6, ease_factor=2.5, repetitions=2), Quality.GOOD
        )
        assert new.repetitions == 3
        assert new.interval == 15
        assert new.ease_factor == pytest.approx(2.5)
        assert new.due == NOW + timedelta(days=15)

    def test_easy_raises_ease(self) -> None:
        new = self.sm2.next_state(
            CardState(interval=6, ease_factor=2.5, repetitions=2), Quality.EASY
        )
        assert new.interval == 15
        assert new.ease_factor == pytest.approx(2.6)

    def test_interval_uses_previous_ease(self) -> None:
        state = CardState(interval=10, ease_factor=1.3, repetitions=4)
        new = self.sm2.next_state(state, Quality.EASY)
        assert new.interval == 13
        assert new.ease_factor == pytest.approx(1.4)

    def test_hard_due_within_the_hour(self) -> None:
        state = CardState(interval=6, ease_factor=2.5, repetitions=2)
        new = self.sm2.next_state(state, Quality.HARD)
        assert new.repetitions == 3
        assert new.interval == 15
        assert new.ease_factor == pytest.approx(2.36)
        assert new.due == NOW + timedelta(hours=1)

    def test_hard_counts_as_success_for_first_review(self) -> None:
        new = self.sm2.next_state(CardState(), Quality.HARD)
        assert new.repetitions == 1
        assert new.interval == 1
        assert new.due == NOW + timedelta(hours=1)

    def test_success_interval_follows_product(self) -> None:
        for quality in (Quality.HARD, Quality.GOOD, Quality.EASY):
            state = CardState(interval=7, ease_factor=2.2, repetitions=5)
            new = self.sm2.next_state(state, quality)
            assert new.interval == round_half_up(7 * 2.2)

    def test_ease_never_below_floor(self) -> None:
        state = CardState()
        qualities = [Quality.HARD] * 30 + [Quality.AGAIN, Quality.HARD, Quality.GOOD] * 10
        for q in qualities:
            state = self.sm2.next_state(state, q)
            assert state.ease_factor >= MIN_EASE_FACTOR
        assert state.ease_factor == pytest.approx(MIN_EASE_FACTOR)

    def test_review_time_overrides_clock(self) -> None:
        when = NOW + timedelta(days=3)
        new = self.sm2.next_state(CardState(), Quality.GOOD, review_time=when)
        assert new.due == when + timedelta(days=1)

    def test_accepts_plain_int(self) -> None:
        new = self.sm2.next_state(CardState(), 3)
        assert new.repetitions == 1

    def test_rejects_out_of_range_quality(self) -> None:
        with pytest.raises(InvalidInput):
            self.sm2.next_state(CardState(), 4)
        with pytest.raises(InvalidInput):
            self.sm2.next_state(CardState(), -1)


class TestHelpers:
    def test_update_ease_per_quality(self) -> None:
        assert update_ease(2.5, Quality.EASY) == pytest.approx(2.6)
        assert update_ease(2.5, Quality.GOOD) == pytest.approx(2.5)
        assert update_ease(2.5, Quality.HARD) == pytest.approx(2.36)

    def test_update_ease_floor(self) -> None:
        assert update_ease(1.31, Quality.HARD) == MIN_EASE_FACTOR

    def test_round_half_up(self) -> None:
        assert round_half_up(6.5) == 7
        assert round_half_up(2.5) == 3
        assert round_half_up(15.0) == 15
        assert round_half_up(14.49) == 14

    def test_quality_parse(self) -> None:
        assert Quality.parse(0) is Quality.AGAIN
        assert Quality.parse(Quality.EASY) is Quality.EASY
        for bad in (7, "2", None, True, 1.0):
            with pytest.raises(InvalidInput):
                Quality.parse(bad)

    def test_card_state_roundtrip_on_row(self) -> None:
        class Row:
            interval = 6.0
            ease_factor = 2.5
            repetitions = 2
            due_date = NOW

        row = Row()
        state = CardState.of(row)
        assert state == CardState(interval=6.0, ease_factor=2.5, repetitions=2, due=NOW)
        CardState(interval=15.0, ease_factor=2.6, repetitions=3, due=NOW).apply_to(row)
        assert (row.interval, row.ease_factor, row.repetitions) == (15.0, 2.6, 3)
