"""Geometric smile metrics and score combination.

All metrics are computed from tooth candidates sorted left-to-right by
centroid x. Every penalty in the final score is monotonic and saturating, so
the score stays in [0, 100] and no single term can dominate without bound.
"""
from typing import List, NamedTuple, Sequence, Tuple
import logging

import numpy as np

from .config import DEFAULT_CONFIG, AnalysisConfig
from .errors import InvalidInput
from .labeling import Box, Component
from .schemas import Metrics

logger = logging.getLogger(__name__)

# Reported when fewer than two candidates exist: not enough evidence for
# either a perfect (1.0) or a failed (0.0) symmetry judgement.
NEUTRAL_SYMMETRY = DEFAULT_CONFIG.neutral_symmetry


class ScoringResult(NamedTuple):
    metrics: Metrics
    ordered: List[Component]
    gaps: List[Box]
    tooth_ratios: List[float]


def sort_candidates(candidates: Sequence[Component]) -> List[Component]:
    """Left-to-right order; ties broken by centroid y, then label."""
    return sorted(candidates, key=lambda c: (c.cx, c.cy, c.label))


def centerline(width: int) -> Tuple[float, float]:
    """Image's vertical symmetry axis and the half-span used to normalize distances.

    Returns:
        (center_x, half_span): pixel-centre midline (W - 1) / 2 and W / 2
    """
    return (width - 1) / 2.0, max(width / 2.0, 1.0)


def symmetry_score(
    ordered: Sequence[Component],
    center_x: float,
    half_span: float,
    config: AnalysisConfig = DEFAULT_CONFIG
) -> float:
    """Mirror balance of candidates about a vertical centerline.

    Candidate i from the left is paired with candidate n-1-i from the right;
    each pair contributes 1 - |d_left - d_right| / half_span (clamped), where d
    is the horizontal distance to the centerline.

    Returns:
        Mean pair score in [0, 1], or the neutral constant when n < 2
    """
    n = len(ordered)
    if n < 2:
        return config.neutral_symmetry

    pair_scores = []
    for i in range(n // 2):
        left, right = ordered[i], ordered[n - 1 - i]
        d_left = abs(center_x - left.cx)
        d_right = abs(right.cx - center_x)
        diff = min(abs(d_left - d_right) / half_span, 1.0)
        pair_scores.append(1.0 - diff)

    return float(min(1.0, max(0.0, sum(pair_scores) / len(pair_scores))))


def vertical_overlap(a: Component, b: Component) -> int:
    """Number of shared rows between two boxes (<= 0 when disjoint)."""
    return min(a.max_y, b.max_y) - max(a.min_y, b.min_y) + 1


def same_row(a: Component, b: Component, config: AnalysisConfig = DEFAULT_CONFIG) -> bool:
    """True if the boxes overlap vertically by enough of the shorter height."""
    overlap = vertical_overlap(a, b)
    return overlap > 0 and overlap >= config.min_vertical_overlap * min(a.height, b.height)


def row_neighbours(ordered: Sequence[Component],
                   config: AnalysisConfig = DEFAULT_CONFIG) -> List[Tuple[Component, Component]]:
    """Pair each candidate with the next one to its right in the same row.

    Candidates in between that do not overlap vertically belong to the other
    arch (upper vs lower) and are skipped.
    """
    pairs = []
    for i, a in enumerate(ordered):
        for b in ordered[i + 1:]:
            if same_row(a, b, config):
                pairs.append((a, b))
                break
    return pairs


def detect_gaps(
    ordered: Sequence[Component],
    dark_mask: np.ndarray,
    config: AnalysisConfig = DEFAULT_CONFIG
) -> List[Box]:
    """Find dark interdental strips between same-row neighbours.

    The strip spans the columns strictly between the two boxes and the rows
    they share. It counts as a gap when it is at least min_gap_width wide and
    more than gap_dark_fraction of its pixels are dark.

    Returns:
        Gap boxes (inclusive), left to right
    """
    gaps = []
    for a, b in row_neighbours(ordered, config):
        x0, x1 = a.max_x + 1, b.min_x - 1
        if x1 - x0 + 1 < config.min_gap_width:
            continue
        y0, y1 = max(a.min_y, b.min_y), min(a.max_y, b.max_y)

        strip = dark_mask[y0:y1 + 1, x0:x1 + 1]
        dark_fraction = float(np.mean(strip))
        if dark_fraction > config.gap_dark_fraction:
            gaps.append((x0, y0, x1, y1))
            logger.debug(f"Gap between labels {a.label} and {b.label}: dark={dark_fraction:.2f}")
    return gaps


def group_rows(ordered: Sequence[Component],
               config: AnalysisConfig = DEFAULT_CONFIG) -> List[List[Component]]:
    """Split sorted candidates into tooth rows.

    Each candidate joins the first row whose most recent member it overlaps
    vertically (see same_row), otherwise it starts a new row.
    """
    rows: List[List[Component]] = []
    for c in ordered:
        for row in rows:
            if same_row(row[-1], c, config):
                row.append(c)
                break
        else:
            rows.append([c])
    return rows


def alignment_deviation(ordered: Sequence[Component],
                        config: AnalysisConfig = DEFAULT_CONFIG) -> float:
    """Mean |cy - row mean cy| over candidates in rows of two or more.

    Returns:
        Deviation in pixels; 0 when no row has at least two members
    """
    deviations = []
    for row in group_rows(ordered, config):
        if len(row) < 2:
            continue
        mean_y = sum(c.cy for c in row) / len(row)
        deviations.extend(abs(c.cy - mean_y) for c in row)
    if not deviations:
        return 0.0
    return float(sum(deviations) / len(deviations))


def bite_score(candidates: Sequence[Component]) -> float:
    """Vertical spread (max - min) of candidate centroids; 0 when empty."""
    if not candidates:
        return 0.0
    ys = [c.cy for c in candidates]
    return float(max(ys) - min(ys))


def brightness_counts(
    candidates: Sequence[Component],
    labels: np.ndarray,
    lightness: np.ndarray,
    config: AnalysisConfig = DEFAULT_CONFIG
) -> List[Tuple[int, int]]:
    """Per-candidate (inner, outline) pixel counts.

    inner: member pixels with L >= inner_bright_lightness
    outline: member pixels with outline_lightness <= L < inner_bright_lightness
    """
    counts = []
    for c in candidates:
        region = (slice(c.min_y, c.max_y + 1), slice(c.min_x, c.max_x + 1))
        member_l = lightness[region][labels[region] == c.label]
        inner = int(np.count_nonzero(member_l >= config.inner_bright_lightness))
        outline = int(np.count_nonzero(
            (member_l >= config.outline_lightness) & (member_l < config.inner_bright_lightness)
        ))
        counts.append((inner, outline))
    return counts


def inner_outline_ratio(counts: Sequence[Tuple[int, int]]) -> float:
    """Total inner / (total outline + 1)."""
    total_inner = sum(inner for inner, _ in counts)
    total_outline = sum(outline for _, outline in counts)
    return total_inner / (total_outline + 1)


def combine_score(metrics: Metrics, config: AnalysisConfig = DEFAULT_CONFIG) -> int:
    """Weighted smile score in [0, 100].

    score = 100 - W_gap * min(gaps, k1)
                - W_sym * (1 - symmetry) * 100 * c1
                - W_align * min(alignment, k3)
                - W_bite * min(bite, k2)
                - W_ratio * max(0, ideal_ratio - ratio)
    """
    symmetry = min(1.0, max(0.0, metrics.symmetryScore))

    gap_penalty = config.gap_weight * min(metrics.gapCount, config.max_penalized_gaps)
    symmetry_penalty = config.symmetry_weight * (1.0 - symmetry) * 100.0 * config.symmetry_scale
    alignment_penalty = config.alignment_weight * min(
        metrics.alignmentDeviation, config.max_penalized_alignment
    )
    bite_penalty = config.bite_weight * min(metrics.biteScore, config.max_penalized_bite)
    ratio_penalty = config.ratio_weight * max(0.0, config.ideal_ratio - metrics.innerOutlineRatio)

    score = (
        100.0 - gap_penalty - symmetry_penalty - alignment_penalty - bite_penalty - ratio_penalty
    )
    return int(round(min(100.0, max(0.0, score))))


def compute_metrics(
    candidates: Sequence[Component],
    labels: np.ndarray,
    lightness: np.ndarray,
    dark_mask: np.ndarray,
    config: AnalysisConfig = DEFAULT_CONFIG
) -> ScoringResult:
    """Compute all metrics for a set of tooth candidates.

    Args:
        candidates: Filtered components (any order)
        labels: Label grid the candidates came from (H, W)
        lightness: HSL lightness plane (H, W)
        dark_mask: Dark-pixel mask (H, W)
        config: Metric parameters

    Returns:
        ScoringResult with Metrics, sorted candidates, gap boxes and per-tooth
        inner/outline ratios (aligned with the sorted candidates)

    Raises:
        InvalidInput: if the planes do not share one shape
    """
    if labels.ndim != 2 or labels.shape != lightness.shape or labels.shape != dark_mask.shape:
        raise InvalidInput(
            f"Mismatched dimensions: labels {labels.shape}, lightness {lightness.shape}, "
            f"dark mask {dark_mask.shape}"
        )

    ordered = sort_candidates(candidates)
    center_x, half_span = centerline(labels.shape[1])

    counts = brightness_counts(ordered, labels, lightness, config)
    gaps = detect_gaps(ordered, dark_mask, config)

    metrics = Metrics(
        teethCount=len(ordered),
        symmetryScore=symmetry_score(ordered, center_x, half_span, config),
        alignmentDeviation=alignment_deviation(ordered, config),
        gapCount=len(gaps),
        biteScore=bite_score(ordered),
        innerOutlineRatio=inner_outline_ratio(counts),
    )
    tooth_ratios = [inner / (outline + 1) for inner, outline in counts]

    logger.info(
        f"Metrics: teeth={metrics.teethCount}, symmetry={metrics.symmetryScore:.3f}, "
        f"alignment={metrics.alignmentDeviation:.2f}, "
        f"gaps={metrics.gapCount}, bite={metrics.biteScore:.1f}, ratio={metrics.innerOutlineRatio:.2f}"
    )
    return ScoringResult(metrics=metrics, ordered=ordered, gaps=gaps, tooth_ratios=tooth_ratios)
