"""Partition a track into runs of points sharing one gradient level.

Two strategies are available:

Buffered: the track is cut into segments of roughly equal length (at least
min_segment_distance, about total / segments_count), each ending on a point
with altitude. Consecutive segments with the same gradient level are joined.

Anchored: only points with altitude ("anchors"), thinned out so no two are
closer than FUZZY_RANGE_M, are used to compute gradients. A run ends where
the gradient between two consecutive anchors changes. With normalization on,
runs too short to be visible on the chart are extended instead of closed.

In both strategies consecutive runs share their boundary point.
"""

import logging
from dataclasses import dataclass, field
from typing import Sequence

from gradient_profile.distance import cumulative_distance, point_distance
from gradient_profile.gradient import FLAT_LEVEL, calculate_gradient
from gradient_profile.models import FeatureOptions, GeoPoint

logger = logging.getLogger(__name__)

# Altitude samples closer than this to the previous anchor are ignored;
# matches the ~30m resolution of SRTM-derived elevation data
FUZZY_RANGE_M = 30.0


@dataclass(frozen=True)
class GradientRun:
    """Consecutive track points sharing one gradient level."""
    points: tuple[GeoPoint, ...]
    gradient: int


# --- Buffered strategy ---


@dataclass
class BufferState:
    """Accumulator for partition_by_min_distance."""
    min_distance: float
    segments: list[list[GeoPoint]] = field(default_factory=list)
    buffer: list[GeoPoint] = field(default_factory=list)
    distance: float = 0.0
    # False until the buffer holds a point with altitude; distance isn't counted before that
    measuring: bool = False


def step_buffer(state: BufferState, point: GeoPoint) -> None:
    """Add one point to the buffer, closing it into a segment when it is long enough."""
    state.buffer.append(point)
    if not state.measuring:
        state.measuring = point.has_altitude
        return

    state.distance += point_distance(state.buffer[-2], point)
    if state.distance >= state.min_distance and point.has_altitude:
        state.segments.append(state.buffer)
        state.buffer = [point]
        state.distance = 0.0


def finish_buffer(state: BufferState) -> list[list[GeoPoint]]:
    """Flush the leftover buffer onto the last segment and return all segments."""
    if state.buffer:
        if not state.segments:
            state.segments.append(state.buffer)
        else:
            # buffer[0] is already the last point of the last segment
            state.segments[-1].extend(state.buffer[1:])
        state.buffer = []
    return state.segments


def partition_by_min_distance(points: Sequence[GeoPoint], min_distance: float) -> list[list[GeoPoint]]:
    """Split points into segments at least min_distance meters long.

    Every segment starts and ends on a point with altitude, except that the
    first segment may start with, and the last may end with, points without
    one. Consecutive segments share their boundary point.
    """
    state = BufferState(min_distance=min_distance)
    for point in points:
        step_buffer(state, point)
    return finish_buffer(state)


def segment_buffered(points: Sequence[GeoPoint], options: FeatureOptions) -> list[GradientRun]:
    """Segment a track with the buffered strategy.

    Args:
        points: Track points in travel order
        options: Resolved options; uses segments_count, min_segment_distance
            and gradient_policy

    Returns:
        Gradient runs in track order
    """
    if not points:
        return []

    total_distance = cumulative_distance(points)
    min_distance = max(total_distance / options.segments_count, options.min_segment_distance)
    segments = partition_by_min_distance(points, min_distance)

    runs = []
    current: list[GeoPoint] | None = None
    current_gradient = FLAT_LEVEL
    for segment in segments:
        gradient = calculate_gradient(segment, options.gradient_policy)
        if current is not None and gradient == current_gradient:
            current.extend(segment[1:])
            continue
        if current is not None:
            runs.append(GradientRun(tuple(current), current_gradient))
        current = list(segment)
        current_gradient = gradient
    if current is not None:
        runs.append(GradientRun(tuple(current), current_gradient))

    logger.debug(
        "Buffered: %d points, %.0fm, %d segments of >= %.0fm, %d runs",
        len(points), total_distance, len(segments), min_distance, len(runs),
    )
    return runs


# --- Anchored strategy ---


@dataclass(frozen=True)
class Anchor:
    """A point with altitude and its index in the full track."""
    index: int
    point: GeoPoint


def is_in_fuzzy_range(reference: GeoPoint, point: GeoPoint) -> bool:
    return point_distance(reference, point) < FUZZY_RANGE_M


def filter_anchors(points: Sequence[GeoPoint]) -> list[Anchor]:
    """Return the points with altitude, skipping those within fuzzy range of the previous anchor."""
    anchors: list[Anchor] = []
    for i, point in enumerate(points):
        if not point.has_altitude:
            continue
        if anchors and is_in_fuzzy_range(anchors[-1].point, point):
            continue
        anchors.append(Anchor(index=i, point=point))
    return anchors


@dataclass(frozen=True)
class Span:
    """A closed run between two anchors (indices into the anchor list)."""
    start: int
    end: int
    gradient: int


@dataclass
class AnchorWalk:
    """Accumulator for the walk over consecutive anchor pairs."""
    start: int  # anchor index where the open span starts
    length: float  # meters covered by the open span
    gradient: int  # gradient level of the open span
    closed: list[Span] = field(default_factory=list)


def _anchor_gradient(anchors: Sequence[Anchor], start: int, end: int, policy: str) -> int:
    return calculate_gradient([a.point for a in anchors[start:end + 1]], policy)


def _distance_between_anchors(points: Sequence[GeoPoint], first: Anchor, last: Anchor) -> float:
    # Includes the points without altitude lying between the two anchors
    return cumulative_distance(points[first.index:last.index + 1])


def step_anchor(
    walk: AnchorWalk,
    points: Sequence[GeoPoint],
    anchors: Sequence[Anchor],
    i: int,
    policy: str,
    min_distance: float | None,
) -> None:
    """Advance the walk by the anchor pair (i - 1, i).

    If the pair's gradient differs from the open span's, the span is closed
    at anchor i - 1, unless min_distance is set and the span is still shorter
    than it; then the span keeps growing and its gradient is recomputed over
    the widened window.
    """
    gradient = _anchor_gradient(anchors, i - 1, i, policy)
    if gradient != walk.gradient:
        if min_distance is not None and walk.length < min_distance:
            walk.gradient = _anchor_gradient(anchors, walk.start, i, policy)
        else:
            walk.closed.append(Span(walk.start, i - 1, walk.gradient))
            walk.start = i - 1
            walk.length = 0.0
            walk.gradient = gradient

    walk.length += _distance_between_anchors(points, anchors[i - 1], anchors[i])


def finish_anchor_walk(
    walk: AnchorWalk,
    points: Sequence[GeoPoint],
    anchors: Sequence[Anchor],
    policy: str,
    min_distance: float | None,
) -> list[Span]:
    """Close the open span and return all spans.

    With min_distance set, a final span shorter than it is merged into the
    previous span (if there is one) and the gradient of the merged span is
    recomputed.
    """
    spans = list(walk.closed)
    last = len(anchors) - 1
    length = _distance_between_anchors(points, anchors[walk.start], anchors[last])

    if min_distance is not None and length < min_distance:
        start = spans.pop().start if spans else walk.start
        spans.append(Span(start, last, _anchor_gradient(anchors, start, last, policy)))
    else:
        spans.append(Span(walk.start, last, walk.gradient))
    return spans


def normalization_distance(points: Sequence[GeoPoint], options: FeatureOptions) -> float:
    """Track distance covered by min_normalization_width_pixels on the chart."""
    track_length = cumulative_distance(points)
    return options.min_normalization_width_pixels * track_length / options.chart_width_pixels


def segment_anchored(points: Sequence[GeoPoint], options: FeatureOptions) -> list[GradientRun]:
    """Segment a track with the anchored strategy.

    Points before the first anchor and after the last anchor get their own
    flat runs, sharing the boundary anchor with the neighbouring run.

    Args:
        points: Track points in travel order
        options: Resolved options; uses normalize, chart_width_pixels,
            min_normalization_width_pixels and gradient_policy

    Returns:
        Gradient runs in track order
    """
    if not points:
        return []

    policy = options.gradient_policy
    anchors = filter_anchors(points)
    if len(anchors) < 2:
        return [GradientRun(tuple(points), calculate_gradient([], policy))]

    min_distance = normalization_distance(points, options) if options.normalize else None

    walk = AnchorWalk(
        start=0,
        length=_distance_between_anchors(points, anchors[0], anchors[1]),
        gradient=_anchor_gradient(anchors, 0, 1, policy),
    )
    for i in range(2, len(anchors)):
        step_anchor(walk, points, anchors, i, policy, min_distance)
    spans = finish_anchor_walk(walk, points, anchors, policy, min_distance)

    runs = []
    first, last = anchors[0], anchors[-1]
    if first.index > 0:
        runs.append(GradientRun(tuple(points[:first.index + 1]), FLAT_LEVEL))
    for span in spans:
        run_points = points[anchors[span.start].index:anchors[span.end].index + 1]
        runs.append(GradientRun(tuple(run_points), span.gradient))
    if last.index < len(points) - 1:
        runs.append(GradientRun(tuple(points[last.index:]), FLAT_LEVEL))

    logger.debug(
        "Anchored: %d points, %d anchors, %d runs (normalization distance %s)",
        len(points), len(anchors), len(runs),
        "off" if min_distance is None else f"{min_distance:.0f}m",
    )
    return runs
