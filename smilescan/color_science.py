"""Image validation and RGB -> HSL conversion.

The scalar and array conversions must agree: `rgb_to_hsl` is the reference
definition, `image_to_hsl` is the vectorized form used by the pipeline.
"""
from typing import Tuple

import cv2
import numpy as np

from .errors import EmptyImage, InvalidInput


def validate_image(image: np.ndarray) -> np.ndarray:
    """Check an RGB(A) uint8 buffer and return its RGB view.

    Args:
        image: Array of shape (H, W, 3) or (H, W, 4), dtype uint8

    Returns:
        (H, W, 3) view of the RGB channels (alpha dropped)

    Raises:
        EmptyImage: zero width or height
        InvalidInput: anything else that is not an 8-bit RGB(A) image
    """
    if not isinstance(image, np.ndarray):
        raise InvalidInput(f"Image must be a numpy array, got {type(image).__name__}")
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise InvalidInput(f"Image must have shape (H, W, 3) or (H, W, 4), got {image.shape}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise EmptyImage(f"Image has no pixels: {image.shape[1]}x{image.shape[0]}")
    if image.dtype != np.uint8:
        raise InvalidInput(f"Image must be uint8, got {image.dtype}")
    return image[:, :, :3]


def rgb_to_hsl(r: int, g: int, b: int) -> dict:
    """Convert one sRGB triple to HSL.

    Args:
        r, g, b: sRGB values (0-255)

    Returns:
        dict with h (degrees, 0-360), s and l (0-1)
    """
    rn, gn, bn = r / 255.0, g / 255.0, b / 255.0
    mx = max(rn, gn, bn)
    mn = min(rn, gn, bn)
    l = (mx + mn) / 2
    d = mx - mn

    if d == 0:
        return {"h": 0.0, "s": 0.0, "l": l}

    s = d / (mx + mn) if l < 0.5 else d / (2 - mx - mn)

    if mx == rn:
        h = 60 * ((gn - bn) / d)
    elif mx == gn:
        h = 60 * ((bn - rn) / d) + 120
    else:
        h = 60 * ((rn - gn) / d) + 240
    if h < 0:
        h += 360

    return {"h": h, "s": s, "l": l}


def image_to_hsl(image: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Convert an RGB(A) image to per-pixel hue, saturation and lightness.

    Uses OpenCV's float HLS conversion, which yields hue in degrees and
    saturation/lightness in [0, 1].

    Args:
        image: RGB(A) image (H, W, 3|4), uint8

    Returns:
        Tuple of (hue, saturation, lightness), each (H, W) float32
    """
    rgb = validate_image(image)
    hls = cv2.cvtColor(rgb.astype(np.float32) / 255.0, cv2.COLOR_RGB2HLS)
    return hls[:, :, 0], hls[:, :, 2], hls[:, :, 1]
