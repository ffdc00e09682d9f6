"""Elevation profile chart generation from gradient features."""

import io

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for server
import matplotlib.pyplot as plt
from matplotlib.collections import PolyCollection
from matplotlib.patches import Patch

from gradient_profile.distance import haversine_distance
from gradient_profile.models import POLICY_BANDED, POLICY_LINEAR, FeatureCollection

# One colour per whole percent, from green (downhill) through sand (flat) to red (uphill)
LINEAR_GRADIENT_COLORS = {
    -16: '#81A850', -15: '#89AA55', -14: '#91AD59', -13: '#99AF5E',
    -12: '#A1B162', -11: '#A8B367', -10: '#B0B66B', -9: '#B8B870',
    -8: '#C0BA75', -7: '#C8BC79', -6: '#D0BF7E', -5: '#D8C182',
    -4: '#E0C387', -3: '#E7C58B', -2: '#EFC890', -1: '#F7CA94',
    0: '#FFCC99',
    1: '#FCC695', 2: '#FAC090', 3: '#F7BA8C', 4: '#F5B588',
    5: '#F2AF83', 6: '#F0A97F', 7: '#EDA37A', 8: '#EB9D76',
    9: '#E89772', 10: '#E5916D', 11: '#E38B69', 12: '#E08665',
    13: '#DE8060', 14: '#DB7A5C', 15: '#D97457', 16: '#D66E53',
}

# Banded levels reuse the linear colour at a grade inside each band
BANDED_GRADIENT_COLORS = {
    -5: LINEAR_GRADIENT_COLORS[-16],
    -4: LINEAR_GRADIENT_COLORS[-12],
    -3: LINEAR_GRADIENT_COLORS[-8],
    -2: LINEAR_GRADIENT_COLORS[-5],
    -1: LINEAR_GRADIENT_COLORS[-2],
    0: LINEAR_GRADIENT_COLORS[0],
    1: LINEAR_GRADIENT_COLORS[2],
    2: LINEAR_GRADIENT_COLORS[5],
    3: LINEAR_GRADIENT_COLORS[8],
    4: LINEAR_GRADIENT_COLORS[12],
    5: LINEAR_GRADIENT_COLORS[16],
}

BANDED_GRADIENT_LABELS = {
    -5: '≤ -16%', -4: '-16% to -10%', -3: '-10% to -7%', -2: '-7% to -4%', -1: '-4% to -1%',
    0: '-1% to 1%',
    1: '1% to 4%', 2: '4% to 7%', 3: '7% to 10%', 4: '10% to 16%', 5: '≥ 16%',
}

# Levels shown in the legend of a linear profile
LINEAR_LEGEND_LEVELS = [-16, -10, -5, 0, 5, 10, 16]

_COLORS = {POLICY_LINEAR: LINEAR_GRADIENT_COLORS, POLICY_BANDED: BANDED_GRADIENT_COLORS}


def gradient_to_color(level: int, policy: str = POLICY_LINEAR) -> str:
    """Map a gradient level to its hex colour; unknown levels get the flat colour."""
    colors = _COLORS[policy]
    return colors.get(level, colors[0])


def gradient_label(level: int, policy: str = POLICY_LINEAR) -> str:
    if policy == POLICY_BANDED:
        return BANDED_GRADIENT_LABELS[level]
    if level <= -16:
        return '≤ -16%'
    if level >= 16:
        return '≥ 16%'
    return f'{level}%'


def legend_levels(levels: list[int], policy: str = POLICY_LINEAR) -> list[int]:
    """Pick the legend entries for a profile containing the given levels.

    Banded profiles list every level present. Linear profiles use the levels
    of LINEAR_LEGEND_LEVELS, trimmed to the range the profile covers plus one
    entry on each side.
    """
    if not levels:
        return []
    if policy == POLICY_BANDED:
        return sorted(set(levels))

    lowest, highest = min(levels), max(levels)
    first = 0
    for i, level in enumerate(LINEAR_LEGEND_LEVELS):
        if level > lowest:
            first = max(i - 1, 0)
            break
    last = len(LINEAR_LEGEND_LEVELS) - 1
    for i in range(len(LINEAR_LEGEND_LEVELS) - 1, -1, -1):
        if LINEAR_LEGEND_LEVELS[i] < highest:
            last = min(i + 1, len(LINEAR_LEGEND_LEVELS) - 1)
            break
    return LINEAR_LEGEND_LEVELS[first:last + 1]


def profile_series(collection: FeatureCollection) -> tuple[list[float], list[float | None], list[int]]:
    """Flatten a feature collection into distance/altitude series.

    Returns (distances_km, altitudes, gradients), where gradients[i] is the
    level of the stretch between point i and point i + 1. Shared boundary
    coordinates between features are only included once.
    """
    distances_km: list[float] = []
    altitudes: list[float | None] = []
    gradients: list[int] = []
    distance = 0.0
    previous = None

    for feature in collection.features:
        for j, (lon, lat, alt) in enumerate(feature.coordinates):
            if previous is not None:
                if j == 0 and (lon, lat) == previous[:2]:
                    continue
                distance += haversine_distance(previous[1], previous[0], lat, lon)
                gradients.append(feature.gradient)
            distances_km.append(distance / 1000)
            altitudes.append(alt)
            previous = (lon, lat, alt)
    return distances_km, altitudes, gradients


def _placeholder(message: str, aspect_ratio: float) -> bytes:
    fig_height = 4
    fig_width = fig_height * aspect_ratio
    fig, ax = plt.subplots(figsize=(fig_width, fig_height), facecolor='white')
    ax.text(0.5, 0.5, message, ha='center', va='center', fontsize=14, color='#999')
    ax.axis('off')
    buf = io.BytesIO()
    fig.savefig(buf, format='png', dpi=100, bbox_inches='tight', facecolor='white')
    plt.close(fig)
    buf.seek(0)
    return buf.getvalue()


def generate_profile_chart(
    collection: FeatureCollection,
    policy: str = POLICY_LINEAR,
    aspect_ratio: float = 3.5,
) -> bytes:
    """Generate an elevation profile image coloured by gradient level.

    Args:
        collection: Features built by build_collection
        policy: Gradient policy the features were classified with
        aspect_ratio: Width/height ratio (1.0 = square, 3.5 = wide default)

    Returns PNG image as bytes.
    """
    distances_km, altitudes, gradients = profile_series(collection)
    known = [alt for alt in altitudes if alt is not None]
    if len(distances_km) < 2 or not known:
        return _placeholder('No elevation data', aspect_ratio)

    fig_height = 4
    fig_width = fig_height * aspect_ratio
    fig, ax = plt.subplots(figsize=(fig_width, fig_height), facecolor='white')

    floor = min(0.0, min(known))
    polygons = []
    colors = []
    for i, gradient in enumerate(gradients):
        e0, e1 = altitudes[i], altitudes[i + 1]
        if e0 is None or e1 is None:
            continue
        d0, d1 = distances_km[i], distances_km[i + 1]
        polygons.append([(d0, floor), (d1, floor), (d1, e1), (d0, e0)])
        colors.append(gradient_to_color(gradient, policy))

    coll = PolyCollection(polygons, facecolors=colors, edgecolors='none', linewidths=0)
    ax.add_collection(coll)

    # NaN breaks the outline where altitude is missing
    outline = [float('nan') if alt is None else alt for alt in altitudes]
    ax.plot(distances_km, outline, color='#333333', linewidth=0.5)

    ax.set_xlim(0, distances_km[-1] or 1)
    ax.set_ylim(floor, max(known) * 1.1 if max(known) > 0 else 1)
    ax.set_xlabel('Distance (km)', fontsize=10)
    ax.set_ylabel('Elevation (m)', fontsize=10)
    ax.spines['top'].set_visible(False)
    ax.spines['right'].set_visible(False)
    ax.grid(axis='y', alpha=0.3, linestyle='-', linewidth=0.5)

    handles = [
        Patch(facecolor=gradient_to_color(level, policy), label=gradient_label(level, policy))
        for level in legend_levels(gradients, policy)
    ]
    if handles:
        ax.legend(handles=handles, loc='lower left', ncol=len(handles), fontsize=8, frameon=False)

    buf = io.BytesIO()
    fig.savefig(buf, format='png', dpi=100, facecolor='white', edgecolor='none')
    plt.close(fig)
    buf.seek(0)
    return buf.getvalue()
