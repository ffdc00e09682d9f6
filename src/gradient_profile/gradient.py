"""Gradient calculation and classification into display levels.

Two classification policies are available and a conversion run uses exactly
one of them:

Banded (11 levels):
    level -5:      ... -16%
    level -4: -16% ... -10%
    level -3: -10% ...  -7%
    level -2:  -7% ...  -4%
    level -1:  -4% ...  -1%
    level  0:  -1% ...   1%  (both exclusive)
    level  1:   1% ...   4%
    level  2:   4% ...   7%
    level  3:   7% ...  10%
    level  4:  10% ...  16%
    level  5:  16% ...
Negative bands include their upper (closer to zero) bound, positive bands
include their lower bound.

Linear (33 levels): the grade rounded half-up to a whole percent, clamped
to [-16, 16].
"""

import logging
import math
from typing import Sequence

from gradient_profile.distance import cumulative_distance
from gradient_profile.models import POLICY_BANDED, POLICY_LINEAR, GeoPoint

logger = logging.getLogger(__name__)

FLAT_LEVEL = 0
LINEAR_LEVEL_LIMIT = 16

BANDED_LEVELS = range(-5, 6)
LINEAR_LEVELS = range(-LINEAR_LEVEL_LIMIT, LINEAR_LEVEL_LIMIT + 1)

# Decimal places kept on a grade; drops haversine rounding noise so a grade
# sitting on a band threshold is classified into that band
GRADE_PRECISION = 6


def grade_between(points: Sequence[GeoPoint]) -> float:
    """Grade in percent between the first and last points that have altitude.

    Points before the first or after the last altitude-bearing point are not
    part of the distance. Returns 0 if fewer than two points have altitude or
    if they are zero distance apart.
    """
    first_idx = None
    for i, pt in enumerate(points):
        if pt.has_altitude:
            first_idx = i
            break
    if first_idx is None:
        return 0.0

    last_idx = None
    for i in range(len(points) - 1, first_idx, -1):
        if points[i].has_altitude:
            last_idx = i
            break
    if last_idx is None:
        return 0.0

    distance = cumulative_distance(points[first_idx:last_idx + 1])
    if distance == 0:
        return 0.0
    grade = (points[last_idx].altitude - points[first_idx].altitude) * 100 / distance
    return round(grade, GRADE_PRECISION)


def classify_banded(percentage: float) -> int:
    """Map a grade percentage to one of the 11 banded levels."""
    if percentage <= -16:
        return -5
    elif -16 < percentage <= -10:
        return -4
    elif -10 < percentage <= -7:
        return -3
    elif -7 < percentage <= -4:
        return -2
    elif -4 < percentage <= -1:
        return -1
    elif -1 < percentage < 1:
        return 0
    elif 1 <= percentage < 4:
        return 1
    elif 4 <= percentage < 7:
        return 2
    elif 7 <= percentage < 10:
        return 3
    elif 10 <= percentage < 16:
        return 4
    elif percentage >= 16:
        return 5
    logger.warning("Unknown gradient percentage %r; cannot map, using level %d", percentage, FLAT_LEVEL)
    return FLAT_LEVEL


def classify_linear(percentage: float) -> int:
    """Map a grade percentage to a whole-percent level in [-16, 16]."""
    if math.isnan(percentage):
        logger.warning("Unknown gradient percentage %r; cannot map, using level %d", percentage, FLAT_LEVEL)
        return FLAT_LEVEL
    if percentage < -LINEAR_LEVEL_LIMIT:
        return -LINEAR_LEVEL_LIMIT
    if percentage > LINEAR_LEVEL_LIMIT:
        return LINEAR_LEVEL_LIMIT
    # Half-up rounding: 2.5 -> 3, -2.5 -> -2
    return int(math.floor(percentage + 0.5))


_CLASSIFIERS = {
    POLICY_BANDED: classify_banded,
    POLICY_LINEAR: classify_linear,
}


def classify(percentage: float, policy: str) -> int:
    """Map a grade percentage to a level using the given policy.

    Raises:
        ValueError: If the policy is unknown.
    """
    try:
        classifier = _CLASSIFIERS[policy]
    except KeyError:
        raise ValueError(f"Unknown gradient policy: {policy!r}") from None
    return classifier(percentage)


def calculate_gradient(points: Sequence[GeoPoint], policy: str) -> int:
    """Gradient level over a run of points."""
    return classify(grade_between(points), policy)
