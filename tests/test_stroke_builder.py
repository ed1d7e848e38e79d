"""
Tests for stroke building.

Fractals are built directly with make_fractal: a top at price p sits on a
bar spanning [p - height, p], a bottom on [p, p + height].
"""

import pytest

from conftest import make_bar
from helpers import make_fractal, random_walk_bars
from src.chan_analysis.chan_config import StrokeConfig
from src.chan_analysis.structure import (
    FractalType,
    StrokeDirection,
    build_strokes,
    calculate_max_retracement,
    confirm_fractals,
    detect_fractals,
    merge_inclusion,
)

TOP = FractalType.TOP
BOTTOM = FractalType.BOTTOM


def flat_bars(count: int, volume: float = 1.0):
    return [make_bar(11, 10, index=i, volume=volume) for i in range(count)]


class TestCandidateRules:

    def test_fewer_than_two_fractals(self):
        assert build_strokes([], flat_bars(5)) == []
        assert build_strokes([make_fractal(BOTTOM, 0, 10)], flat_bars(5)) == []

    def test_simple_up_stroke(self):
        fractals = [make_fractal(BOTTOM, 0, 10), make_fractal(TOP, 5, 20)]
        strokes = build_strokes(fractals, flat_bars(6))

        assert len(strokes) == 1
        stroke = strokes[0]
        assert stroke.id == "stroke_0_5"
        assert stroke.direction is StrokeDirection.UP
        assert stroke.amplitude == 10
        assert stroke.amplitude_pct == pytest.approx(100.0)
        assert stroke.duration_bars == 6

    def test_simple_down_stroke(self):
        fractals = [make_fractal(TOP, 0, 20), make_fractal(BOTTOM, 4, 15)]
        strokes = build_strokes(fractals, flat_bars(5))

        assert [s.id for s in strokes] == ["stroke_0_4"]
        assert strokes[0].direction is StrokeDirection.DOWN
        assert strokes[0].amplitude_pct == pytest.approx(25.0)

    def test_too_short_is_rejected(self):
        """Four bars counting both endpoints is below the default minimum of five."""
        fractals = [make_fractal(BOTTOM, 0, 10), make_fractal(TOP, 3, 20)]
        assert build_strokes(fractals, flat_bars(4)) == []

    def test_min_bars_is_configurable(self):
        fractals = [make_fractal(BOTTOM, 0, 10), make_fractal(TOP, 3, 20)]
        strokes = build_strokes(fractals, flat_bars(4), StrokeConfig(min_bars=4))
        assert [s.id for s in strokes] == ["stroke_0_3"]

    def test_no_price_breakout_is_rejected(self):
        fractals = [make_fractal(BOTTOM, 0, 10), make_fractal(TOP, 5, 9.5)]
        assert build_strokes(fractals, flat_bars(6)) == []

    def test_inclusion_between_pivots_is_rejected(self):
        """Bottom bar [10, 20] encloses top bar [12, 18]."""
        fractals = [make_fractal(BOTTOM, 0, 10, height=10), make_fractal(TOP, 5, 18, height=6)]
        assert build_strokes(fractals, flat_bars(6)) == []


class TestGreedySelection:

    def test_most_extreme_candidate_wins_over_nearest(self):
        fractals = [
            make_fractal(BOTTOM, 0, 10),
            make_fractal(TOP, 5, 20),
            make_fractal(BOTTOM, 8, 15),
            make_fractal(TOP, 12, 25),
        ]
        strokes = build_strokes(fractals, flat_bars(13))

        # The fractals skipped over are never used as origins
        assert [s.id for s in strokes] == ["stroke_0_12"]
        assert strokes[0].end_fractal.price == 25

    def test_ties_keep_the_earliest_candidate(self):
        fractals = [
            make_fractal(BOTTOM, 0, 10),
            make_fractal(TOP, 5, 20),
            make_fractal(BOTTOM, 9, 15),
            make_fractal(TOP, 13, 20),
        ]
        strokes = build_strokes(fractals, flat_bars(14))

        assert [s.id for s in strokes] == ["stroke_0_5", "stroke_5_9", "stroke_9_13"]

    def test_origin_advances_when_no_candidate(self):
        """From the top at 0 the only bottom is too close, so the scan moves on."""
        fractals = [
            make_fractal(TOP, 0, 30),
            make_fractal(BOTTOM, 2, 20),
            make_fractal(TOP, 7, 28),
        ]
        strokes = build_strokes(fractals, flat_bars(8))

        assert [s.id for s in strokes] == ["stroke_2_7"]
        assert strokes[0].direction is StrokeDirection.UP

    def test_inputs_untouched(self):
        fractals = [make_fractal(BOTTOM, 0, 10), make_fractal(TOP, 5, 20)]
        snapshot = list(fractals)
        build_strokes(fractals, flat_bars(6))
        assert fractals == snapshot


class TestStrokeStatistics:

    def test_triangle_strokes(self, triangle_bars):
        fractals = confirm_fractals(detect_fractals(triangle_bars), triangle_bars)
        strokes = build_strokes(fractals, triangle_bars)

        assert [s.id for s in strokes] == [
            "stroke_1_5", "stroke_5_9", "stroke_9_13", "stroke_13_17", "stroke_17_21",
        ]
        assert [s.direction for s in strokes] == [
            StrokeDirection.UP, StrokeDirection.DOWN, StrokeDirection.UP,
            StrokeDirection.DOWN, StrokeDirection.UP,
        ]

        first = strokes[0]
        assert first.start_fractal.price == 99.5
        assert first.end_fractal.price == 120.5
        assert first.amplitude == pytest.approx(21.0)
        assert first.amplitude_pct == pytest.approx(21.0 / 99.5 * 100)
        assert first.duration_bars == 5
        # Volumes are 10 + index over bars 1..5
        assert first.avg_volume == pytest.approx(13.0)
        # Each one-unit bar dips one unit below the running high
        assert first.max_retracement == pytest.approx(1.0 / 21.0)
        assert first.high == 120.5
        assert first.low == 99.5
        assert first.start_time == triangle_bars[1].open_time
        assert first.end_time == triangle_bars[5].open_time

    def test_quality_gates_disabled_by_default(self, triangle_bars):
        strokes = build_strokes(detect_fractals(triangle_bars), triangle_bars)
        assert all(s.is_valid and s.invalid_reason is None for s in strokes)

    def test_amplitude_gate(self, triangle_bars):
        strokes = build_strokes(
            detect_fractals(triangle_bars), triangle_bars, StrokeConfig(min_amplitude_pct=50.0)
        )
        assert len(strokes) == 5
        assert all(not s.is_valid for s in strokes)
        assert {s.invalid_reason for s in strokes} == {"amplitude_too_small"}

    def test_retracement_gate(self, triangle_bars):
        strokes = build_strokes(
            detect_fractals(triangle_bars), triangle_bars, StrokeConfig(max_retracement=0.01)
        )
        assert strokes[0].invalid_reason == "too_many_retracement"
        assert not strokes[0].is_valid


class TestMaxRetracement:

    def test_up_move(self):
        bars = [make_bar(11, 10, 0), make_bar(14, 12, 1), make_bar(13, 11, 2), make_bar(20, 15, 3)]
        retracement = calculate_max_retracement(bars, StrokeDirection.UP, 10, 20)
        assert retracement == pytest.approx(0.5)

    def test_down_move(self):
        bars = [make_bar(20, 19, 0), make_bar(18, 15, 1), make_bar(17, 14, 2), make_bar(12, 10, 3)]
        retracement = calculate_max_retracement(bars, StrokeDirection.DOWN, 20, 10)
        assert retracement == pytest.approx(0.3)

    def test_flat_move_is_zero(self):
        bars = [make_bar(11, 10, 0), make_bar(12, 9, 1)]
        assert calculate_max_retracement(bars, StrokeDirection.UP, 10, 10) == 0.0

    def test_no_bars_is_zero(self):
        assert calculate_max_retracement([], StrokeDirection.UP, 10, 20) == 0.0


class TestStrokeInvariants:

    @pytest.mark.parametrize("seed", [3, 17, 99])
    def test_random_walk(self, seed):
        merged = merge_inclusion(random_walk_bars(600, seed=seed))
        strokes = build_strokes(detect_fractals(merged), merged)

        assert strokes
        for stroke in strokes:
            start, end = stroke.start_fractal, stroke.end_fractal
            assert start.type is not end.type
            assert stroke.end_index - stroke.start_index + 1 >= 5
            assert not (start.contains(end) or end.contains(start))
            if stroke.is_up:
                assert start.type is BOTTOM and end.price > start.price
            else:
                assert start.type is TOP and end.price < start.price
            assert stroke.id == f"stroke_{stroke.start_index}_{stroke.end_index}"

        for a, b in zip(strokes, strokes[1:]):
            assert a.end_index <= b.start_index
