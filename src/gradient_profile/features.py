"""Build GeoJSON-style gradient features from a list of track points.

Each feature is a LineString whose properties.attributeType is its gradient
level; the chart widget picks the segment colour from it:

    {
        "type": "Feature",
        "geometry": {
            "type": "LineString",
            "coordinates": [[lon1, lat1, alt1], ..., [lonN, latN, altN]]
        },
        "properties": {"attributeType": gradient_level}
    }

Consecutive features share their boundary coordinate.
"""

import logging
from typing import Sequence

from gradient_profile.interpolation import interpolate_elevation
from gradient_profile.models import (
    STRATEGY_BUFFERED,
    Feature,
    FeatureCollection,
    FeatureOptions,
    GeoPoint,
)
from gradient_profile.segmenter import segment_anchored, segment_buffered

logger = logging.getLogger(__name__)


def build_feature(points: Sequence[GeoPoint], gradient: int, interpolate: bool) -> Feature:
    """Build a feature from points, filling missing altitudes if interpolate is set."""
    filled = interpolate_elevation(points, interpolate)
    return Feature(
        coordinates=tuple((pt.lon, pt.lat, pt.altitude) for pt in filled),
        gradient=gradient,
    )


def build_collection(features: Sequence[Feature]) -> FeatureCollection:
    return FeatureCollection(features=tuple(features))


def build_features(points: Sequence[GeoPoint], options: FeatureOptions | None = None) -> list[Feature]:
    """Segment the track and build one feature per gradient run.

    Args:
        points: Track points in travel order
        options: Conversion options; defaults to FeatureOptions()

    Returns:
        Features in track order; empty for an empty track

    Raises:
        ValueError: If options name an unknown strategy or gradient policy.
    """
    resolved = (options or FeatureOptions()).resolved()
    if resolved.strategy == STRATEGY_BUFFERED:
        runs = segment_buffered(points, resolved)
    else:
        runs = segment_anchored(points, resolved)

    features = [build_feature(run.points, run.gradient, resolved.interpolate_elevation) for run in runs]
    logger.debug(
        "Built %d features from %d points (strategy=%s, policy=%s)",
        len(features), len(points), resolved.strategy, resolved.gradient_policy,
    )
    return features


def build_geojson_features(points: Sequence[GeoPoint], options: FeatureOptions | None = None) -> list[dict]:
    """Convert track points to the elevation data consumed by the chart.

    Returns a single-element list holding the FeatureCollection as a dict.
    """
    collection = build_collection(build_features(points, options))
    return [collection.to_dict()]
