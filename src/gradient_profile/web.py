"""Web interface: upload a track, get its gradient features or profile chart."""

import io
import logging
import os
import tempfile
from xml.etree.ElementTree import ParseError

from flask import Flask, jsonify, render_template_string, request, send_file
from gpxpy.gpx import GPXException

from gradient_profile import __version_date__, get_git_hash
from gradient_profile.charts import generate_profile_chart
from gradient_profile.config import load_config, options_from_config
from gradient_profile.features import build_collection, build_features
from gradient_profile.models import FeatureOptions
from gradient_profile.parser import PARSERS, UnsupportedFormatError, parse_track

logger = logging.getLogger(__name__)

app = Flask(__name__)

HTML_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Gradient Profile</title>
</head>
<body>
  <h1>Gradient Profile</h1>
  <form method="post" action="/features" enctype="multipart/form-data">
    <input type="file" name="track" accept="{{ extensions }}">
    <select name="strategy">
      <option value="anchored" {% if defaults.strategy == 'anchored' %}selected{% endif %}>Anchored</option>
      <option value="buffered" {% if defaults.strategy == 'buffered' %}selected{% endif %}>Buffered</option>
    </select>
    <label><input type="checkbox" name="interpolate_elevation" value="true"
      {% if defaults.interpolate_elevation %}checked{% endif %}> Interpolate elevation</label>
    <label><input type="checkbox" name="normalize" value="true"
      {% if defaults.normalize %}checked{% endif %}> Normalize</label>
    <input type="number" name="chart_width_pixels" value="{{ defaults.chart_width_pixels }}">
    <button type="submit">Build features</button>
    <button type="submit" formaction="/profile.png">Profile chart</button>
  </form>
  <footer>{{ version_date }} ({{ git_hash }})</footer>
</body>
</html>
"""

# Form fields read as FeatureOptions values, with their types
_FORM_FIELDS = {
    "strategy": str,
    "gradient_policy": str,
    "segments_count": int,
    "min_segment_distance": float,
    "chart_width_pixels": float,
    "min_normalization_width_pixels": float,
}
# Checkboxes; an unchecked box is not submitted, so a missing flag is False
_FORM_FLAGS = ("interpolate_elevation", "normalize")


def get_defaults() -> FeatureOptions:
    """Option defaults, with config file values applied."""
    return options_from_config(load_config())


def options_from_form(form) -> FeatureOptions:
    """Build resolved options from submitted form values on top of the defaults.

    Raises:
        ValueError: If a value can't be converted or names an unknown strategy/policy.
    """
    overrides = {}
    for key, convert in _FORM_FIELDS.items():
        value = form.get(key, "")
        if value:
            overrides[key] = convert(value)
    for key in _FORM_FLAGS:
        overrides[key] = form.get(key, "").lower() in ("true", "on", "1")
    return options_from_config(load_config(), **overrides).resolved()


def _points_from_upload(upload):
    """Save an uploaded track to a temp file (keeping its extension) and parse it."""
    extension = os.path.splitext(upload.filename or "")[1].lower()
    if extension not in PARSERS:
        raise UnsupportedFormatError(f"Unknown extension '{extension}'")
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "track" + extension)
        upload.save(path)
        return parse_track(path)


def _build_from_request():
    """Return (collection, options) for the uploaded track, or a (response, status) error."""
    upload = request.files.get("track")
    if upload is None or not upload.filename:
        return None, (jsonify({"error": "No track file uploaded"}), 400)

    try:
        options = options_from_form(request.form)
    except ValueError as e:
        return None, (jsonify({"error": f"Invalid option: {e}"}), 400)

    try:
        points = _points_from_upload(upload)
    except UnsupportedFormatError as e:
        return None, (jsonify({"error": str(e)}), 400)
    except (GPXException, ParseError, ValueError) as e:
        logger.warning("Cannot read uploaded track %s: %s", upload.filename, e)
        return None, (jsonify({"error": f"Cannot read track file: {e}"}), 400)

    return (build_collection(build_features(points, options)), options), None


@app.route("/")
def index():
    return render_template_string(
        HTML_TEMPLATE,
        defaults=get_defaults(),
        extensions=",".join(sorted(PARSERS)),
        version_date=__version_date__,
        git_hash=get_git_hash(),
    )


@app.route("/features", methods=["POST"])
def features():
    """Return the gradient feature collection for an uploaded track as JSON."""
    result, error = _build_from_request()
    if error:
        return error
    collection, _ = result
    return jsonify([collection.to_dict()])


@app.route("/profile.png", methods=["POST"])
def profile_png():
    """Return the elevation profile chart for an uploaded track."""
    result, error = _build_from_request()
    if error:
        return error
    collection, options = result
    img_bytes = generate_profile_chart(collection, options.gradient_policy)
    return send_file(io.BytesIO(img_bytes), mimetype="image/png")
