import pytest

from gradient_profile.models import GeoPoint


@pytest.fixture
def flat_track_points():
    """A short flat track, ~100m between points."""
    return [
        GeoPoint(lat=37.7749, lon=-122.4194, altitude=10.0),
        GeoPoint(lat=37.7758, lon=-122.4183, altitude=10.0),
        GeoPoint(lat=37.7767, lon=-122.4172, altitude=10.0),
        GeoPoint(lat=37.7776, lon=-122.4161, altitude=10.0),
    ]


@pytest.fixture
def uphill_track_points():
    """Track points going uphill."""
    return [
        GeoPoint(lat=37.7749, lon=-122.4194, altitude=10.0),
        GeoPoint(lat=37.7758, lon=-122.4183, altitude=20.0),
        GeoPoint(lat=37.7767, lon=-122.4172, altitude=35.0),
    ]


@pytest.fixture
def gappy_track_points():
    """Track with missing altitudes at the start, in the middle and at the end."""
    return [
        GeoPoint(lat=45.0000, lon=6.0),
        GeoPoint(lat=45.0005, lon=6.0),
        GeoPoint(lat=45.0010, lon=6.0, altitude=100.0),
        GeoPoint(lat=45.0015, lon=6.0, altitude=104.0),
        GeoPoint(lat=45.0020, lon=6.0),
        GeoPoint(lat=45.0025, lon=6.0),
        GeoPoint(lat=45.0030, lon=6.0, altitude=95.0),
        GeoPoint(lat=45.0035, lon=6.0, altitude=96.0),
        GeoPoint(lat=45.0040, lon=6.0),
    ]
