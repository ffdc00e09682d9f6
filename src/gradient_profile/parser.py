"""Read track files into lists of GeoPoints."""

import json
import logging
import os
from xml.etree import ElementTree as ET

import gpxpy

from gradient_profile.models import GeoPoint

logger = logging.getLogger(__name__)

KML_NS = {"kml": "http://www.opengis.net/kml/2.2", "gx": "http://www.google.com/kml/ext/2.2"}
TCX_NS = {"tcx": "http://www.garmin.com/xmlschemas/TrainingCenterDatabase/v2"}


class UnsupportedFormatError(ValueError):
    """The track file extension has no parser."""


def parse_gpx(filepath: str) -> list[GeoPoint]:
    """Parse a GPX file and return its track points (or route points if it has no tracks)."""
    with open(filepath, "r") as f:
        gpx = gpxpy.parse(f)

    points: list[GeoPoint] = []
    for track in gpx.tracks:
        for segment in track.segments:
            for pt in segment.points:
                points.append(GeoPoint(lat=pt.latitude, lon=pt.longitude, altitude=pt.elevation))
    if not points:
        for route in gpx.routes:
            for pt in route.points:
                points.append(GeoPoint(lat=pt.latitude, lon=pt.longitude, altitude=pt.elevation))
    return points


def parse_kml(filepath: str) -> list[GeoPoint]:
    """Parse LineString coordinates ("lon,lat[,alt]") and gx:Track coords ("lon lat [alt]")."""
    root = ET.parse(filepath).getroot()

    points: list[GeoPoint] = []
    for node in root.findall(".//kml:LineString/kml:coordinates", KML_NS):
        if not node.text:
            continue
        for token in node.text.split():
            point = coordinate_to_point(token.split(","))
            if point is not None:
                points.append(point)

    for node in root.findall(".//gx:Track/gx:coord", KML_NS):
        if not node.text:
            continue
        point = coordinate_to_point(node.text.split())
        if point is not None:
            points.append(point)
    return points


def parse_tcx(filepath: str) -> list[GeoPoint]:
    """Parse TCX trackpoints; those without a position are skipped."""
    root = ET.parse(filepath).getroot()

    points: list[GeoPoint] = []
    for tp in root.findall(".//tcx:Trackpoint", TCX_NS):
        lat_el = tp.find("tcx:Position/tcx:LatitudeDegrees", TCX_NS)
        lon_el = tp.find("tcx:Position/tcx:LongitudeDegrees", TCX_NS)
        if lat_el is None or lon_el is None:
            continue
        alt_el = tp.find("tcx:AltitudeMeters", TCX_NS)
        altitude = float(alt_el.text) if alt_el is not None and alt_el.text else None
        points.append(GeoPoint(lat=float(lat_el.text), lon=float(lon_el.text), altitude=altitude))
    return points


def coordinate_to_point(coord) -> GeoPoint | None:
    """Convert a [lon, lat] or [lon, lat, alt] coordinate to a GeoPoint.

    Returns None for anything that isn't a list of 2 or 3 numbers.
    """
    if not isinstance(coord, (list, tuple)) or not 2 <= len(coord) <= 3:
        logger.debug("Skipping invalid coordinate: %r", coord)
        return None
    try:
        lon = float(coord[0])
        lat = float(coord[1])
        altitude = float(coord[2]) if len(coord) == 3 and coord[2] not in ("", None) else None
    except (TypeError, ValueError):
        logger.debug("Skipping invalid coordinate: %r", coord)
        return None
    return GeoPoint(lat=lat, lon=lon, altitude=altitude)


def _geometry_lines(geometry) -> list:
    """Coordinate lists of a LineString or MultiLineString; empty for anything else."""
    if not isinstance(geometry, dict):
        return []
    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, list):
        return []
    if geometry.get("type") == "LineString":
        return [coordinates]
    if geometry.get("type") == "MultiLineString":
        return [line for line in coordinates if isinstance(line, list)]
    return []


def points_from_geojson(data: dict) -> list[GeoPoint]:
    """Collect the points of all LineString and MultiLineString geometries, in order.

    Features, geometries and coordinates that don't fit the GeoJSON shapes are
    skipped.

    Raises:
        ValueError: If data is not a JSON object.
    """
    if not isinstance(data, dict):
        raise ValueError(f"GeoJSON must be an object, not {type(data).__name__}")

    if data.get("type") == "FeatureCollection":
        features = data.get("features")
        if not isinstance(features, list):
            features = []
        geometries = [feature.get("geometry") for feature in features if isinstance(feature, dict)]
    elif data.get("type") == "Feature":
        geometries = [data.get("geometry")]
    else:
        geometries = [data]

    points: list[GeoPoint] = []
    for geometry in geometries:
        for line in _geometry_lines(geometry):
            for coord in line:
                point = coordinate_to_point(coord)
                if point is not None:
                    points.append(point)
    return points


def parse_geojson(filepath: str) -> list[GeoPoint]:
    with open(filepath, "r") as f:
        return points_from_geojson(json.load(f))


PARSERS = {
    ".gpx": parse_gpx,
    ".kml": parse_kml,
    ".tcx": parse_tcx,
    ".geojson": parse_geojson,
    ".json": parse_geojson,
}


def parse_track(filepath: str) -> list[GeoPoint]:
    """Parse a track file, picking the parser from the file extension.

    Raises:
        UnsupportedFormatError: If the extension is not one of PARSERS.
        FileNotFoundError: If the file does not exist.
    """
    extension = os.path.splitext(filepath)[1].lower()
    parser = PARSERS.get(extension)
    if parser is None:
        raise UnsupportedFormatError(f"Unknown extension '{extension}'")
    points = parser(filepath)
    logger.debug("Parsed %d points from %s", len(points), filepath)
    return points
