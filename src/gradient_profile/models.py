from dataclasses import dataclass, replace

STRATEGY_ANCHORED = "anchored"
STRATEGY_BUFFERED = "buffered"
STRATEGIES = (STRATEGY_ANCHORED, STRATEGY_BUFFERED)

POLICY_LINEAR = "linear"
POLICY_BANDED = "banded"
POLICIES = (POLICY_LINEAR, POLICY_BANDED)

# Gradient policy each strategy was designed around
DEFAULT_POLICY_FOR_STRATEGY = {
    STRATEGY_ANCHORED: POLICY_LINEAR,
    STRATEGY_BUFFERED: POLICY_BANDED,
}

MIN_SEGMENTS_COUNT = 10
MIN_SEGMENT_DISTANCE = 50.0  # meters

COLLECTION_CREATOR = "gradient-profile"
COLLECTION_SUMMARY = "gradient"


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float
    altitude: float | None = None  # meters

    @property
    def has_altitude(self) -> bool:
        return self.altitude is not None

    def with_altitude(self, altitude: float | None) -> "GeoPoint":
        return replace(self, altitude=altitude)


@dataclass(frozen=True)
class FeatureOptions:
    strategy: str = STRATEGY_ANCHORED
    gradient_policy: str | None = None  # None = the strategy's default policy
    # Buffered strategy
    segments_count: int = 200  # target number of segments; min 10
    min_segment_distance: float = 200.0  # meters; min 50
    # Both strategies
    interpolate_elevation: bool = False  # fill missing altitudes on output coordinates
    # Anchored strategy
    normalize: bool = False  # merge spans too short to be visible on the chart
    chart_width_pixels: float = 1600.0
    min_normalization_width_pixels: float = 5.0

    def resolved(self) -> "FeatureOptions":
        """Return a copy with floors applied and the gradient policy filled in.

        Out-of-range values are clamped rather than rejected. Unknown strategy
        or policy names raise ValueError.
        """
        if self.strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy: {self.strategy!r}")
        policy = self.gradient_policy or DEFAULT_POLICY_FOR_STRATEGY[self.strategy]
        if policy not in POLICIES:
            raise ValueError(f"Unknown gradient policy: {policy!r}")
        return replace(
            self,
            gradient_policy=policy,
            segments_count=max(int(self.segments_count), MIN_SEGMENTS_COUNT),
            min_segment_distance=max(float(self.min_segment_distance), MIN_SEGMENT_DISTANCE),
            chart_width_pixels=max(float(self.chart_width_pixels), 1.0),
            min_normalization_width_pixels=max(float(self.min_normalization_width_pixels), 0.0),
        )


Coordinate = tuple[float, float, float | None]  # (lon, lat, altitude)


@dataclass(frozen=True)
class Feature:
    coordinates: tuple[Coordinate, ...]
    gradient: int

    def to_dict(self) -> dict:
        return {
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": [
                    [lon, lat] if alt is None else [lon, lat, alt]
                    for lon, lat, alt in self.coordinates
                ],
            },
            "properties": {"attributeType": self.gradient},
        }


@dataclass(frozen=True)
class FeatureCollection:
    features: tuple[Feature, ...]

    @property
    def record_count(self) -> int:
        return len(self.features)

    def to_dict(self) -> dict:
        return {
            "type": "FeatureCollection",
            "features": [feature.to_dict() for feature in self.features],
            "properties": {
                "Creator": COLLECTION_CREATOR,
                "records": self.record_count,
                "summary": COLLECTION_SUMMARY,
            },
        }
