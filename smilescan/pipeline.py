"""Smile analysis entry points.

`analyze` runs one synchronous, deterministic pass over a single image:

    image -> pixel masks -> tooth components -> tooth candidates
          -> metrics + score -> overlay

It keeps no state between calls; every buffer is allocated per call, so
concurrent analyses from worker threads do not interfere.
"""
from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence
import logging

import numpy as np

from .classifier import classify_pixels
from .color_science import validate_image
from .config import DEFAULT_CONFIG, DEFAULT_POLICY, AnalysisConfig, DiscountPolicy
from .discount import score_to_discount as _score_to_discount
from .labeling import Box, Component, label_components
from .landmarks import lip_box_from_landmarks
from .postprocess import filter_components, largest_component_box
from .schemas import Metrics
from .scoring import combine_score, compute_metrics
from .visualization import render_overlay

logger = logging.getLogger(__name__)

# Fewer candidates than this means symmetry fell back to the neutral value
MIN_CONFIDENT_TEETH = 2


@dataclass(frozen=True)
class Analysis:
    """Result of one analysis run."""
    score: int
    metrics: Metrics
    overlay_image: np.ndarray
    confidence: Literal["low", "normal"]
    lip_box: Optional[Box]
    lip_box_source: Optional[Literal["landmarks", "color"]]
    candidates: List[Component]
    gaps: List[Box]


def analyze(
    image: np.ndarray,
    landmarks: Optional[Sequence] = None,
    config: AnalysisConfig = DEFAULT_CONFIG
) -> Analysis:
    """Score the smile in an RGB(A) image.

    Args:
        image: RGB(A) image (H, W, 3|4), uint8
        landmarks: Optional mouth polygon in pixel coordinates. When given it
            locates the lip box instead of the lip colour heuristic. The
            lip box is only drawn on the overlay; symmetry is always measured
            about the image's vertical midline.
        config: Thresholds and weights

    Returns:
        Analysis with score, metrics, overlay image and confidence. Fewer than
        two tooth candidates (including none, i.e. no teeth detected) is a
        normal result with confidence "low".

    Raises:
        EmptyImage / InvalidInput: malformed image or landmarks
    """
    rgb = validate_image(image)
    height, width = rgb.shape[:2]

    lip_box = None
    lip_box_source = None
    if landmarks is not None:
        lip_box = lip_box_from_landmarks(landmarks, width, height)
        lip_box_source = "landmarks"

    masks = classify_pixels(rgb, config)

    labels, components = label_components(masks.tooth)
    candidates = filter_components(components, width, height, config)

    if lip_box is None:
        _, lip_components = label_components(masks.lip)
        lip_box = largest_component_box(lip_components)
        if lip_box is not None:
            lip_box_source = "color"

    result = compute_metrics(candidates, labels, masks.lightness, masks.dark, config)
    score = combine_score(result.metrics, config)

    if result.metrics.teethCount < MIN_CONFIDENT_TEETH:
        confidence = "low"
        logger.warning(f"Only {result.metrics.teethCount} tooth candidates found, low confidence")
    else:
        confidence = "normal"

    summary = (
        f"Score {score} | teeth {result.metrics.teethCount} | gaps {result.metrics.gapCount}"
    )
    overlay = render_overlay(
        rgb, result.ordered, result.tooth_ratios, result.gaps, lip_box, summary, config
    )

    logger.info(f"Analysis complete: score={score}, confidence={confidence}, lip box={lip_box_source}")
    return Analysis(
        score=score,
        metrics=result.metrics,
        overlay_image=overlay,
        confidence=confidence,
        lip_box=lip_box,
        lip_box_source=lip_box_source,
        candidates=result.ordered,
        gaps=result.gaps,
    )


def score_to_discount(score: int, policy: DiscountPolicy = DEFAULT_POLICY) -> int:
    """Discount percentage for a smile score (see discount.score_to_discount)."""
    return _score_to_discount(score, policy)
