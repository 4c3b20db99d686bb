"""4-connected component labeling of binary masks.

Labels are assigned in raster order (top-to-bottom, left-to-right) of each
component's first pixel, so the same mask always produces the same ids.
Diagonal neighbours are not connected.
"""
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
import logging

from .errors import EmptyImage, InvalidInput

logger = logging.getLogger(__name__)

Box = Tuple[int, int, int, int]


@dataclass(frozen=True)
class Component:
    """Connected region of a mask. Box coordinates are inclusive."""
    label: int
    min_x: int
    min_y: int
    max_x: int
    max_y: int
    area: int
    cx: float
    cy: float

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def box(self) -> Box:
        return (self.min_x, self.min_y, self.max_x, self.max_y)


def check_mask(mask: np.ndarray) -> Tuple[int, int]:
    """Validate a 2D mask and return its (height, width)."""
    if not isinstance(mask, np.ndarray) or mask.ndim != 2:
        shape = getattr(mask, "shape", None)
        raise InvalidInput(f"Mask must be a 2D numpy array, got shape {shape}")
    h, w = mask.shape
    if h == 0 or w == 0:
        raise EmptyImage(f"Mask has no pixels: {w}x{h}")
    return h, w


def label_components(mask: np.ndarray) -> Tuple[np.ndarray, List[Component]]:
    """Find 4-connected components with an explicit-stack flood fill.

    Each foreground pixel is pushed exactly once (it is labeled when pushed),
    so the fill is O(pixels) in time and bounded in stack size.

    Args:
        mask: Binary mask (H, W); any non-zero value is foreground

    Returns:
        Tuple of:
        - Label grid (H, W) int32, 0 = background, 1..N = component ids
        - Components ordered by label id
    """
    h, w = check_mask(mask)

    flat = np.asarray(mask, dtype=bool).ravel()
    fg = flat.tolist()
    labels = [0] * (h * w)
    components: List[Component] = []
    next_label = 0

    # flatnonzero yields seeds in raster order
    for seed in np.flatnonzero(flat).tolist():
        if labels[seed]:
            continue

        next_label += 1
        labels[seed] = next_label
        stack = [seed]
        area = sum_x = sum_y = 0
        min_x, min_y, max_x, max_y = w, h, -1, -1

        while stack:
            idx = stack.pop()
            y, x = divmod(idx, w)

            area += 1
            sum_x += x
            sum_y += y
            if x < min_x:
                min_x = x
            if x > max_x:
                max_x = x
            if y < min_y:
                min_y = y
            if y > max_y:
                max_y = y

            if x > 0:
                n = idx - 1
                if fg[n] and not labels[n]:
                    labels[n] = next_label
                    stack.append(n)
            if x < w - 1:
                n = idx + 1
                if fg[n] and not labels[n]:
                    labels[n] = next_label
                    stack.append(n)
            if y > 0:
                n = idx - w
                if fg[n] and not labels[n]:
                    labels[n] = next_label
                    stack.append(n)
            if y < h - 1:
                n = idx + w
                if fg[n] and not labels[n]:
                    labels[n] = next_label
                    stack.append(n)

        components.append(Component(
            label=next_label,
            min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y,
            area=area,
            cx=sum_x / area,
            cy=sum_y / area,
        ))

    label_grid = np.array(labels, dtype=np.int32).reshape(h, w)
    logger.info(f"Labeled {len(components)} components in {w}x{h} mask")
    return label_grid, components
