from typing import Sequence

from gradient_profile.distance import cumulative_distance, point_distance
from gradient_profile.models import GeoPoint


def _fill_start(points: list[GeoPoint]) -> None:
    """Give leading altitude-less points the first known altitude."""
    if not points or points[0].has_altitude:
        return
    for index, pt in enumerate(points):
        if pt.has_altitude:
            for i in range(index):
                points[i] = points[i].with_altitude(pt.altitude)
            return


def _fill_end(points: list[GeoPoint]) -> None:
    """Give trailing altitude-less points the last known altitude."""
    if not points or points[-1].has_altitude:
        return
    for index in range(len(points) - 1, -1, -1):
        if points[index].has_altitude:
            altitude = points[index].altitude
            for i in range(index + 1, len(points)):
                points[i] = points[i].with_altitude(altitude)
            return


def _fill_gap(points: list[GeoPoint], start: int, end: int) -> None:
    """Set altitudes on points[start..end] at the constant grade of the gap.

    points[start - 1] and points[end + 1] must have altitude. Each altitude is
    built from the previous point's (already rounded) altitude, so the values
    accumulate along the run.
    """
    prev_idx = start - 1
    next_idx = end + 1

    distance = cumulative_distance(points[prev_idx:next_idx + 1])
    altitude_delta = points[next_idx].altitude - points[prev_idx].altitude
    grade = 0.0 if distance == 0 else altitude_delta * 100 / distance

    for i in range(start, end + 1):
        step = point_distance(points[i - 1], points[i])
        altitude = grade * step / 100 + points[i - 1].altitude
        points[i] = points[i].with_altitude(round(altitude, 1))


def interpolate_elevation(points: Sequence[GeoPoint], interpolate: bool) -> list[GeoPoint]:
    """Return the points with missing altitudes filled in.

    Leading and trailing points without altitude are given the altitude of the
    closest point that has one (a flat profile towards the track ends). Gaps in
    between are filled so the grade across each gap stays constant. If no point
    has an altitude, the points are returned as they are.

    The input is not modified; if interpolate is False it is returned as a list
    without changes.
    """
    result = list(points)
    if not interpolate or not result:
        return result

    _fill_start(result)
    _fill_end(result)

    prev_idx = -1  # index of the last point with altitude
    i = 0
    while i < len(result):
        if result[i].has_altitude:
            prev_idx = i
            i += 1
            continue

        # No altitude anywhere before this point: nothing to anchor to
        if prev_idx == -1:
            i += 1
            continue

        next_idx = i + 1
        while next_idx < len(result) and not result[next_idx].has_altitude:
            next_idx += 1
        if next_idx == len(result):
            break

        _fill_gap(result, prev_idx + 1, next_idx - 1)
        prev_idx = next_idx
        i = next_idx + 1

    return result
