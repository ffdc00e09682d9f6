"""Tests for track segmentation."""

import math

import pytest

from gradient_profile.distance import EARTH_RADIUS_M, cumulative_distance
from gradient_profile.models import FeatureOptions, GeoPoint
from gradient_profile.segmenter import (
    FUZZY_RANGE_M,
    AnchorWalk,
    BufferState,
    Span,
    filter_anchors,
    finish_buffer,
    normalization_distance,
    partition_by_min_distance,
    segment_anchored,
    segment_buffered,
    step_anchor,
    step_buffer,
)

METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180


def make_points(altitudes: list[float | None], spacing_m: float = 100.0) -> list[GeoPoint]:
    """Create points along a meridian, spacing_m apart."""
    return make_points_at([i * spacing_m for i in range(len(altitudes))], altitudes)


def make_points_at(positions_m: list[float], altitudes: list[float | None]) -> list[GeoPoint]:
    """Create points along a meridian at the given distances from the start."""
    return [
        GeoPoint(lat=45.0 + pos / METERS_PER_DEGREE, lon=6.0, altitude=alt)
        for pos, alt in zip(positions_m, altitudes)
    ]


def shares_boundaries(runs, points) -> bool:
    """Consecutive runs share one point and together cover every point in order."""
    for previous, current in zip(runs, runs[1:]):
        if previous.points[-1] != current.points[0]:
            return False
    joined = list(runs[0].points)
    for run in runs[1:]:
        joined.extend(run.points[1:])
    return joined == list(points)


def alternating_track(count: int = 9, spacing_m: float = 50.0) -> list[GeoPoint]:
    """Track going up and down 5m every spacing_m (+/-10% at 50m)."""
    return make_points([100.0 + 5.0 * (i % 2) for i in range(count)], spacing_m)


def buffered_options(**kwargs) -> FeatureOptions:
    return FeatureOptions(strategy="buffered", **kwargs).resolved()


def anchored_options(**kwargs) -> FeatureOptions:
    return FeatureOptions(strategy="anchored", **kwargs).resolved()


class TestPartitionByMinDistance:
    def test_empty(self):
        assert partition_by_min_distance([], 100.0) == []

    def test_single_point(self):
        points = make_points([100.0])
        assert partition_by_min_distance(points, 100.0) == [points]

    def test_segments_share_boundary_points(self):
        points = make_points([100.0, 101.0, 102.0, 103.0, 104.0, 105.0])
        segments = partition_by_min_distance(points, 150.0)
        assert segments == [points[0:3], points[2:6]]

    def test_leftover_points_join_last_segment(self):
        points = make_points([100.0, 101.0, 102.0, 103.0])
        segments = partition_by_min_distance(points, 150.0)
        assert segments == [points]

    def test_leading_points_without_altitude_dont_count(self):
        points = make_points([None, None, 100.0, 110.0, 120.0])
        segments = partition_by_min_distance(points, 150.0)
        assert segments == [points]

    def test_segment_ends_on_point_with_altitude(self):
        points = make_points([100.0, None, None, 130.0, 131.0, 132.0, 133.0])
        segments = partition_by_min_distance(points, 150.0)
        assert segments[0] == points[0:4]
        assert segments[0][-1].has_altitude

    def test_no_altitudes_is_one_segment(self):
        points = make_points([None, None, None])
        assert partition_by_min_distance(points, 50.0) == [points]


class TestStepBuffer:
    def test_closes_when_long_enough(self):
        points = make_points([100.0, 101.0, 102.0])
        state = BufferState(min_distance=150.0)

        step_buffer(state, points[0])
        step_buffer(state, points[1])
        assert state.segments == []
        assert state.distance == pytest.approx(100.0)

        step_buffer(state, points[2])
        assert state.segments == [points]
        assert state.buffer == [points[2]]
        assert state.distance == 0.0

    def test_no_distance_before_first_altitude(self):
        points = make_points([None, None, 100.0])
        state = BufferState(min_distance=50.0)
        for pt in points:
            step_buffer(state, pt)
        assert state.distance == 0.0
        assert state.segments == []
        assert finish_buffer(state) == [points]


class TestSegmentBuffered:
    def test_empty(self):
        assert segment_buffered([], buffered_options()) == []

    def test_single_point(self):
        points = make_points([100.0])
        runs = segment_buffered(points, buffered_options())
        assert len(runs) == 1
        assert runs[0].points == tuple(points)
        assert runs[0].gradient == 0

    def test_ten_percent_climb_is_one_run(self):
        # 1000m rising 100m in two 500m steps
        points = make_points([0.0, 50.0, 100.0], spacing_m=500.0)
        runs = segment_buffered(points, buffered_options())
        assert [run.gradient for run in runs] == [4]
        assert runs[0].points == tuple(points)

    def test_steady_climb_is_one_run(self):
        # 1000m rising 105m: 10.5%
        points = make_points([0.0, 52.5, 105.0], spacing_m=500.0)
        runs = segment_buffered(points, buffered_options())
        assert len(runs) == 1
        assert runs[0].gradient == 4
        assert runs[0].points == tuple(points)

    def test_equal_gradients_merge(self):
        points = make_points([100.0, 126.0, 152.0, 152.0, 152.0], spacing_m=250.0)
        runs = segment_buffered(points, buffered_options())
        assert [run.gradient for run in runs] == [4, 0]
        assert runs[0].points == tuple(points[0:3])
        assert runs[1].points == tuple(points[2:5])

    def test_linear_policy(self):
        points = make_points([100.0, 126.0, 152.0], spacing_m=250.0)
        runs = segment_buffered(points, buffered_options(gradient_policy="linear"))
        assert [run.gradient for run in runs] == [10]

    def test_segment_length_follows_segments_count(self):
        # 2000m track going up and down 20m every 100m
        points = make_points([100.0 + 20.0 * (i % 2) for i in range(21)], spacing_m=100.0)

        # ~167m segments: each spans an up and a down, so the whole track is flat
        coarse = segment_buffered(points, buffered_options(segments_count=12, min_segment_distance=50.0))
        assert [run.gradient for run in coarse] == [0]

        # 50m segments (min distance floored at 50m): every 100m step is its own run
        fine = segment_buffered(points, buffered_options(segments_count=40, min_segment_distance=10.0))
        assert [run.gradient for run in fine] == [5, -5] * 10

    def test_flat_track(self, flat_track_points):
        runs = segment_buffered(flat_track_points, buffered_options())
        assert [run.gradient for run in runs] == [0]

    def test_runs_share_boundaries(self, gappy_track_points):
        runs = segment_buffered(gappy_track_points, buffered_options(min_segment_distance=50.0))
        assert shares_boundaries(runs, gappy_track_points)


class TestFilterAnchors:
    def test_skips_points_without_altitude(self):
        points = make_points([None, 100.0, None, 110.0])
        anchors = filter_anchors(points)
        assert [a.index for a in anchors] == [1, 3]
        assert anchors[0].point == points[1]

    def test_skips_points_in_fuzzy_range(self):
        points = make_points_at([0.0, 10.0, 40.0, 60.0, 80.0], [100.0, 101.0, 102.0, 103.0, 104.0])
        anchors = filter_anchors(points)
        # 10m is too close to 0m; 60m is too close to 40m
        assert [a.index for a in anchors] == [0, 2, 4]

    def test_fuzzy_range_measured_from_last_kept_anchor(self):
        step = FUZZY_RANGE_M * 0.6
        points = make_points_at([0.0, step, 2 * step, 3 * step], [100.0] * 4)
        anchors = filter_anchors(points)
        assert [a.index for a in anchors] == [0, 2]

    def test_empty(self):
        assert filter_anchors([]) == []


class TestStepAnchor:
    def test_gradient_change_closes_span(self):
        points = make_points([100.0, 110.0, 100.0])
        anchors = filter_anchors(points)
        walk = AnchorWalk(start=0, length=100.0, gradient=10)

        step_anchor(walk, points, anchors, 2, "linear", None)

        assert walk.closed == [Span(0, 1, 10)]
        assert walk.start == 1
        assert walk.gradient == -10
        assert walk.length == pytest.approx(100.0)

    def test_short_span_keeps_growing(self):
        points = make_points([100.0, 110.0, 100.0])
        anchors = filter_anchors(points)
        walk = AnchorWalk(start=0, length=100.0, gradient=10)

        step_anchor(walk, points, anchors, 2, "linear", 1000.0)

        assert walk.closed == []
        assert walk.start == 0
        assert walk.gradient == 0
        assert walk.length == pytest.approx(200.0)

    def test_same_gradient_extends_span(self):
        points = make_points([100.0, 110.0, 120.0])
        anchors = filter_anchors(points)
        walk = AnchorWalk(start=0, length=100.0, gradient=10)

        step_anchor(walk, points, anchors, 2, "linear", None)

        assert walk.closed == []
        assert walk.length == pytest.approx(200.0)


class TestSegmentAnchored:
    def test_empty(self):
        assert segment_anchored([], anchored_options()) == []

    def test_single_point(self):
        points = make_points([100.0])
        runs = segment_anchored(points, anchored_options())
        assert len(runs) == 1
        assert runs[0].points == tuple(points)
        assert runs[0].gradient == 0

    def test_fewer_than_two_anchors_is_one_flat_run(self):
        points = make_points([None, 100.0, None])
        runs = segment_anchored(points, anchored_options())
        assert len(runs) == 1
        assert runs[0].points == tuple(points)
        assert runs[0].gradient == 0

    def test_steady_climb_is_one_run(self):
        points = make_points([100.0, 110.0, 120.0, 130.0])
        runs = segment_anchored(points, anchored_options())
        assert len(runs) == 1
        assert runs[0].gradient == 10

    def test_direction_changes_without_normalization(self):
        points = alternating_track(count=9)
        runs = segment_anchored(points, anchored_options())
        assert len(runs) == 8
        assert [run.gradient for run in runs] == [10, -10] * 4
        assert all(len(run.points) == 2 for run in runs)

    def test_normalization_merges_short_runs(self):
        points = alternating_track(count=9)
        runs = segment_anchored(points, anchored_options(normalize=True, chart_width_pixels=10))
        assert len(runs) < 8
        assert shares_boundaries(runs, points)

    def test_normalization_off_by_default_even_with_narrow_chart(self):
        points = alternating_track(count=9)
        runs = segment_anchored(points, anchored_options(chart_width_pixels=10))
        assert len(runs) == 8

    def test_leading_and_trailing_points_get_flat_runs(self):
        points = make_points([None, None, 100.0, 110.0, 120.0, None])
        runs = segment_anchored(points, anchored_options())
        assert [run.gradient for run in runs] == [0, 10, 0]
        assert runs[0].points == tuple(points[0:3])
        assert runs[1].points == tuple(points[2:5])
        assert runs[2].points == tuple(points[4:6])

    def test_short_last_run_merges_into_previous(self):
        # 900m at +10%, then a 40m drop at -10%
        positions = [i * 100.0 for i in range(10)] + [940.0]
        alts = [100.0 + 10.0 * i for i in range(10)] + [186.0]
        points = make_points_at(positions, alts)

        plain = segment_anchored(points, anchored_options())
        assert [run.gradient for run in plain] == [10, -10]

        # 10 of 100 pixels: runs under 94m are too short
        merged = segment_anchored(
            points,
            anchored_options(normalize=True, chart_width_pixels=100, min_normalization_width_pixels=10),
        )
        assert len(merged) == 1
        assert merged[0].points == tuple(points)
        assert merged[0].gradient == 9  # 86m over 940m

    def test_short_only_run_keeps_leading_flat_run(self):
        points = make_points([None, 100.0, 105.0, 100.0, 105.0, 100.0], spacing_m=50.0)
        runs = segment_anchored(points, anchored_options(normalize=True, chart_width_pixels=1))
        assert [run.gradient for run in runs] == [0, 0]
        assert runs[0].points == tuple(points[0:2])
        assert runs[1].points == tuple(points[1:])

    def test_flat_track(self, flat_track_points):
        runs = segment_anchored(flat_track_points, anchored_options())
        assert [run.gradient for run in runs] == [0]

    def test_banded_policy(self):
        points = make_points([100.0, 112.0, 124.0])
        runs = segment_anchored(points, anchored_options(gradient_policy="banded"))
        assert [run.gradient for run in runs] == [4]

    @pytest.mark.parametrize("normalize", [False, True])
    def test_runs_share_boundaries(self, gappy_track_points, normalize):
        runs = segment_anchored(gappy_track_points, anchored_options(normalize=normalize))
        assert shares_boundaries(runs, gappy_track_points)


class TestNormalizationDistance:
    def test_scales_with_track_length(self):
        points = make_points([100.0, 100.0, 100.0], spacing_m=800.0)
        options = anchored_options(normalize=True)
        expected = 5 * cumulative_distance(points) / 1600
        assert normalization_distance(points, options) == pytest.approx(expected)
