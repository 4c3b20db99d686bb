"""Component filtering and region selection."""
from typing import List, Optional, Tuple
import logging

from .config import DEFAULT_CONFIG, AnalysisConfig
from .labeling import Box, Component

logger = logging.getLogger(__name__)


def area_range(width: int, height: int, config: AnalysisConfig = DEFAULT_CONFIG) -> Tuple[int, int]:
    """Plausible tooth area range for an image of the given size.

    min_area = max(60, 0.00005 * W * H), max_area = 0.1 * W * H (never below min_area).

    Returns:
        (min_area, max_area) in pixels, both inclusive
    """
    total_pixels = width * height
    min_area = max(config.min_area_floor, int(round(total_pixels * config.min_area_fraction)))
    max_area = max(min_area, int(total_pixels * config.max_area_fraction))
    return min_area, max_area


def is_tooth_candidate(component: Component, min_area: int, max_area: int,
                       config: AnalysisConfig = DEFAULT_CONFIG) -> bool:
    """Area and bounding-box aspect ratio gate."""
    if not (min_area <= component.area <= max_area):
        return False
    return config.min_aspect_ratio <= component.aspect_ratio <= config.max_aspect_ratio


def filter_components(
    components: List[Component],
    width: int,
    height: int,
    config: AnalysisConfig = DEFAULT_CONFIG
) -> List[Component]:
    """Drop components outside the plausible tooth area/aspect ranges.

    Suppresses sensor noise, specular highlights and large bright background
    regions. Input order (raster discovery order) is preserved.

    Args:
        components: Components from label_components
        width, height: Image dimensions used to scale the area range
        config: Filtering parameters

    Returns:
        Surviving components (tooth candidates)
    """
    min_area, max_area = area_range(width, height, config)
    candidates = [c for c in components if is_tooth_candidate(c, min_area, max_area, config)]
    logger.info(
        f"Kept {len(candidates)}/{len(components)} components "
        f"(area {min_area}-{max_area}, aspect {config.min_aspect_ratio}-{config.max_aspect_ratio})"
    )
    return candidates


def largest_component_box(components: List[Component]) -> Optional[Box]:
    """Bounding box of the largest component, lowest label winning ties.

    Returns:
        Box or None if there are no components
    """
    if not components:
        return None
    largest = max(components, key=lambda c: (c.area, -c.label))
    return largest.box
