import argparse
import json
import logging
import sys
from xml.etree.ElementTree import ParseError

from gpxpy.gpx import GPXException

from gradient_profile.charts import generate_profile_chart
from gradient_profile.config import load_config, options_from_config
from gradient_profile.distance import cumulative_distance
from gradient_profile.features import build_collection, build_features
from gradient_profile.models import POLICIES, STRATEGIES, FeatureOptions
from gradient_profile.parser import UnsupportedFormatError, parse_track

# Default values for CLI options
_DEFAULT_OPTIONS = FeatureOptions()
DEFAULTS = {
    "strategy": _DEFAULT_OPTIONS.strategy,
    "gradient_policy": None,
    "segments_count": _DEFAULT_OPTIONS.segments_count,
    "min_segment_distance": _DEFAULT_OPTIONS.min_segment_distance,
    "interpolate_elevation": _DEFAULT_OPTIONS.interpolate_elevation,
    "normalize": _DEFAULT_OPTIONS.normalize,
    "chart_width_pixels": _DEFAULT_OPTIONS.chart_width_pixels,
    "min_normalization_width_pixels": _DEFAULT_OPTIONS.min_normalization_width_pixels,
}


def build_parser(config: dict | None = None) -> argparse.ArgumentParser:
    """Build argument parser with defaults from config file."""
    if config is None:
        config = {}

    def get_default(key: str):
        return config.get(key, DEFAULTS[key])

    parser = argparse.ArgumentParser(
        description="Convert a GPS track into gradient-coloured elevation profile features (GeoJSON)."
    )
    parser.add_argument("track_file", help="Path to a .gpx, .kml, .tcx or .geojson file")
    parser.add_argument(
        "--strategy",
        choices=STRATEGIES,
        default=get_default("strategy"),
        help=f"Segmentation strategy (default: {DEFAULTS['strategy']})",
    )
    parser.add_argument(
        "--policy",
        dest="gradient_policy",
        choices=POLICIES,
        default=get_default("gradient_policy"),
        help="Gradient classification policy (default: linear for anchored, banded for buffered)",
    )
    parser.add_argument(
        "--segments",
        dest="segments_count",
        type=int,
        default=get_default("segments_count"),
        help=f"Buffered strategy: target number of segments, min 10 (default: {DEFAULTS['segments_count']})",
    )
    parser.add_argument(
        "--min-segment-distance",
        type=float,
        default=get_default("min_segment_distance"),
        help=f"Buffered strategy: minimum segment length in meters, min 50 (default: {DEFAULTS['min_segment_distance']})",
    )
    parser.add_argument(
        "--interpolate",
        dest="interpolate_elevation",
        action="store_true",
        default=get_default("interpolate_elevation"),
        help="Fill in missing altitudes on the output coordinates",
    )
    parser.add_argument(
        "--normalize",
        action="store_true",
        default=get_default("normalize"),
        help="Anchored strategy: merge features too short to be visible on the chart",
    )
    parser.add_argument(
        "--chart-width",
        dest="chart_width_pixels",
        type=float,
        default=get_default("chart_width_pixels"),
        help=f"Chart width in pixels, used by --normalize (default: {DEFAULTS['chart_width_pixels']})",
    )
    parser.add_argument(
        "--min-pixels",
        dest="min_normalization_width_pixels",
        type=float,
        default=get_default("min_normalization_width_pixels"),
        help=f"Minimum feature width in pixels, used by --normalize (default: {DEFAULTS['min_normalization_width_pixels']})",
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Write the GeoJSON to this file instead of stdout",
    )
    parser.add_argument(
        "--chart",
        default=None,
        help="Also render the elevation profile to this PNG file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log segmentation details to stderr",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    config = load_config()
    parser = build_parser(config)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    options = options_from_config(
        None,
        **{key: getattr(args, key) for key in DEFAULTS},
    )

    try:
        points = parse_track(args.track_file)
    except FileNotFoundError:
        print(f"Error: File not found: {args.track_file}", file=sys.stderr)
        sys.exit(1)
    except UnsupportedFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (GPXException, ParseError, ValueError) as e:
        print(f"Error parsing track file: {e}", file=sys.stderr)
        sys.exit(1)

    if not points:
        print("Error: Track file contains no points.", file=sys.stderr)
        sys.exit(1)

    try:
        resolved = options.resolved()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    collection = build_collection(build_features(points, resolved))
    output = json.dumps([collection.to_dict()], indent=2)

    if args.output:
        with open(args.output, "w") as f:
            f.write(output)
    else:
        print(output)

    if args.chart:
        with open(args.chart, "wb") as f:
            f.write(generate_profile_chart(collection, resolved.gradient_policy))

    total_km = cumulative_distance(points) / 1000
    print(
        f"{len(points)} points, {total_km:.2f} km, {collection.record_count} features "
        f"({resolved.strategy}, {resolved.gradient_policy})",
        file=sys.stderr,
    )
