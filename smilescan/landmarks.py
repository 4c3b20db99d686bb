"""Mouth landmark handling.

Landmarks come from an external face-landmark detector (e.g. MediaPipe
FaceMesh running in the browser). The core only needs the lip bounding box.
"""
import math
from typing import List, Sequence, Tuple
import logging

from .errors import InvalidInput
from .labeling import Box

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

# FaceMesh outer-mouth contour, left corner round to right corner
MOUTH_LANDMARK_INDICES = [61, 146, 91, 181, 84, 17, 314, 405, 321, 375, 291, 308]

MIN_POLYGON_POINTS = 3


def _coords(landmark) -> Tuple[float, float]:
    # FaceMesh landmark objects expose .x/.y, JSON payloads are pairs
    if hasattr(landmark, "x"):
        return float(landmark.x), float(landmark.y)
    return float(landmark[0]), float(landmark[1])


def mouth_points_from_face_mesh(landmarks: Sequence, width: int, height: int) -> List[Point]:
    """Select the mouth contour from a full FaceMesh landmark list.

    Args:
        landmarks: Normalized FaceMesh landmarks (objects with .x/.y or (x, y) pairs)
        width, height: Image dimensions in pixels

    Returns:
        Mouth polygon in pixel coordinates
    """
    needed = max(MOUTH_LANDMARK_INDICES) + 1
    if len(landmarks) < needed:
        raise InvalidInput(f"FaceMesh landmark list too short: {len(landmarks)} < {needed}")
    points = []
    for i in MOUTH_LANDMARK_INDICES:
        x, y = _coords(landmarks[i])
        points.append((x * width, y * height))
    return points


def normalize_points(points: Sequence, width: int, height: int) -> List[Point]:
    """Scale normalized (0-1) points to pixel coordinates."""
    return [(x * width, y * height) for x, y in (_coords(p) for p in points)]


def lip_box_from_landmarks(points: Sequence, width: int, height: int) -> Box:
    """Bounding box of a mouth polygon, clipped to the image.

    Args:
        points: Polygon in pixel coordinates ((x, y) pairs)
        width, height: Image dimensions

    Returns:
        Inclusive (min_x, min_y, max_x, max_y)

    Raises:
        InvalidInput: fewer than 3 points, non-finite coordinates, or a
            polygon lying entirely outside the image
    """
    try:
        coords = [_coords(p) for p in points]
    except (TypeError, ValueError, IndexError) as e:
        raise InvalidInput(f"Malformed landmark point: {e}") from e

    if len(coords) < MIN_POLYGON_POINTS:
        raise InvalidInput(f"Need at least {MIN_POLYGON_POINTS} landmark points, got {len(coords)}")
    if not all(math.isfinite(v) for xy in coords for v in xy):
        raise InvalidInput("Landmark coordinates must be finite")

    xs = [x for x, _ in coords]
    ys = [y for _, y in coords]
    min_x = max(0, int(math.floor(min(xs))))
    min_y = max(0, int(math.floor(min(ys))))
    max_x = min(width - 1, int(math.ceil(max(xs))))
    max_y = min(height - 1, int(math.ceil(max(ys))))

    if min_x > max_x or min_y > max_y:
        raise InvalidInput(f"Landmark polygon lies outside the {width}x{height} image")

    logger.info(f"Lip box from {len(coords)} landmarks: ({min_x},{min_y})-({max_x},{max_y})")
    return (min_x, min_y, max_x, max_y)
