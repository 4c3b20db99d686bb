"""Pixel classification into tooth, lip and dark masks.

The three classes are independent: a pixel may satisfy none, one or several
of the rules.
"""
from typing import NamedTuple

import numpy as np
import logging

from .color_science import image_to_hsl
from .config import DEFAULT_CONFIG, AnalysisConfig

logger = logging.getLogger(__name__)


class PixelMasks(NamedTuple):
    """Per-class boolean masks plus the lightness plane they were derived from."""
    tooth: np.ndarray
    lip: np.ndarray
    dark: np.ndarray
    lightness: np.ndarray


def tooth_lightness_threshold(mean_lightness: float, config: AnalysisConfig = DEFAULT_CONFIG) -> float:
    """Adaptive tooth threshold: max(floor, mean image lightness * k)."""
    return max(config.tooth_min_lightness, mean_lightness * config.tooth_mean_factor)


def classify_pixels(image: np.ndarray, config: AnalysisConfig = DEFAULT_CONFIG) -> PixelMasks:
    """Classify every pixel of an RGB(A) image.

    Rules (hue in degrees, saturation/lightness in [0, 1]):
    - tooth: L > max(0.6, mean(L) * k) and S < 0.35
    - lip: hue in [260, 360] or [0, 40], S > 0.25, 0.08 < L < 0.85
    - dark: L < 0.2

    Args:
        image: RGB(A) image (H, W, 3|4), uint8
        config: Thresholds

    Returns:
        PixelMasks with (H, W) boolean masks and the float lightness plane

    Raises:
        EmptyImage / InvalidInput: for malformed images (before any mean is taken)
    """
    hue, saturation, lightness = image_to_hsl(image)

    mean_lightness = float(np.mean(lightness, dtype=np.float64))
    threshold = tooth_lightness_threshold(mean_lightness, config)

    tooth = (lightness > threshold) & (saturation < config.tooth_max_saturation)

    if config.lip_hue_low <= config.lip_hue_high:
        in_lip_hue = (hue >= config.lip_hue_low) & (hue <= config.lip_hue_high)
    else:
        # Band wraps through 0 degrees (reds and magentas)
        in_lip_hue = (hue >= config.lip_hue_low) | (hue <= config.lip_hue_high)
    lip = (
        in_lip_hue
        & (saturation > config.lip_min_saturation)
        & (lightness > config.lip_min_lightness)
        & (lightness < config.lip_max_lightness)
    )

    dark = lightness < config.dark_max_lightness

    logger.info(
        f"Classified pixels: mean L={mean_lightness:.3f}, tooth threshold={threshold:.3f}, "
        f"tooth={int(tooth.sum())}, lip={int(lip.sum())}, dark={int(dark.sum())}"
    )
    return PixelMasks(tooth=tooth, lip=lip, dark=dark, lightness=lightness)
