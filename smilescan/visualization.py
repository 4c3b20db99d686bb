"""Overlay rendering: lip box, tooth boxes and gap shading."""
import cv2
import numpy as np
import base64
from typing import Optional, Sequence, Tuple
import logging

from .color_science import validate_image
from .config import DEFAULT_CONFIG, AnalysisConfig
from .labeling import Box, Component

logger = logging.getLogger(__name__)

# Lip outline (#D946EF in RGB, Fuchsia)
LIP_COLOR = (217, 70, 239)
LIP_THICKNESS = 2

TOOTH_ALPHA = 0.35

# Gap shading (#F97316 in RGB, Orange)
GAP_COLOR = (249, 115, 22)
GAP_ALPHA = 0.6

TEXT_COLOR = (255, 255, 255)
TEXT_SHADOW = (0, 0, 0)


def tooth_color(ratio: float, ideal_ratio: float) -> Tuple[int, int, int]:
    """Continuous red -> green colour for an inner/outline brightness ratio.

    Ratio 0 is pure red, ratio >= ideal_ratio is pure green.
    """
    t = min(1.0, max(0.0, ratio / ideal_ratio))
    return (int(round(255 * (1 - t))), int(round(255 * t)), 0)


def _blend_box(image: np.ndarray, box: Box, color: Tuple[int, int, int], alpha: float) -> None:
    x0, y0, x1, y1 = box
    region = image[y0:y1 + 1, x0:x1 + 1]
    image[y0:y1 + 1, x0:x1 + 1] = (
        region * (1 - alpha) + np.array(color) * alpha
    ).astype(np.uint8)


def render_overlay(
    image: np.ndarray,
    candidates: Sequence[Component],
    tooth_ratios: Sequence[float],
    gaps: Sequence[Box] = (),
    lip_box: Optional[Box] = None,
    summary: Optional[str] = None,
    config: AnalysisConfig = DEFAULT_CONFIG
) -> np.ndarray:
    """Draw the segmentation result onto a copy of the image.

    Args:
        image: Original RGB(A) image (H, W, 3|4), uint8. Not modified.
        candidates: Tooth candidates
        tooth_ratios: Inner/outline ratio per candidate (same order)
        gaps: Gap boxes to shade
        lip_box: Optional lip bounding box to outline
        summary: Optional text line drawn in the top-left corner
        config: Supplies ideal_ratio for the colour scale

    Returns:
        New RGB image (H, W, 3), uint8
    """
    overlay = validate_image(image).copy()

    for gap in gaps:
        _blend_box(overlay, gap, GAP_COLOR, GAP_ALPHA)

    for component, ratio in zip(candidates, tooth_ratios):
        color = tooth_color(ratio, config.ideal_ratio)
        _blend_box(overlay, component.box, color, TOOTH_ALPHA)
        cv2.rectangle(
            overlay,
            (component.min_x, component.min_y),
            (component.max_x, component.max_y),
            color, 1
        )

    if lip_box is not None:
        x0, y0, x1, y1 = lip_box
        cv2.rectangle(overlay, (x0, y0), (x1, y1), LIP_COLOR, LIP_THICKNESS)

    if summary:
        h = overlay.shape[0]
        scale = max(0.3, h / 800.0)
        origin = (4, max(10, int(14 * scale / 0.5)))
        cv2.putText(overlay, summary, origin, cv2.FONT_HERSHEY_SIMPLEX, scale,
                    TEXT_SHADOW, 3, cv2.LINE_AA)
        cv2.putText(overlay, summary, origin, cv2.FONT_HERSHEY_SIMPLEX, scale,
                    TEXT_COLOR, 1, cv2.LINE_AA)

    return overlay


def encode_png_data_uri(image: np.ndarray) -> Optional[str]:
    """Encode an RGB image as a PNG data URI.

    Returns:
        Base64 data URI string (data:image/png;base64,...), or None on error
    """
    try:
        success, buffer = cv2.imencode('.png', cv2.cvtColor(image, cv2.COLOR_RGB2BGR))
        if not success:
            logger.error("Failed to encode overlay as PNG")
            return None

        png_base64 = base64.b64encode(buffer).decode('utf-8')
        data_uri = f"data:image/png;base64,{png_base64}"

        logger.info(f"Encoded overlay: {len(data_uri)} bytes")
        return data_uri

    except cv2.error as e:
        logger.error(f"Error encoding overlay: {e}")
        return None
