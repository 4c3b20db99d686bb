"""Synthetic smile images shared by the test modules."""
import numpy as np
import pytest

WIDTH, HEIGHT = 100, 60

WHITE = (242, 242, 242)  # L ~ 0.95, S = 0
GUM = (128, 128, 128)    # L ~ 0.5: neither tooth nor dark
LIP = (180, 40, 60)      # hue ~ 351, S ~ 0.64, L ~ 0.43

TOOTH_W, TOOTH_H = 6, 10
STRIP_W = 2
TEETH_PER_ROW = 6
ROW_X0 = 27              # rows span x 27..72, symmetric about x = 49.5
UPPER_Y0, LOWER_Y0 = 19, 31


def tooth_x0(i: int) -> int:
    return ROW_X0 + i * (TOOTH_W + STRIP_W)


def build_smile(dark_strip_after=None, background=(0, 0, 0)) -> np.ndarray:
    """Two symmetric rows of six 6x10 white teeth separated by gum strips.

    Args:
        dark_strip_after: Index of an upper-row tooth whose right-hand strip
            is left black instead of gum
        background: Fill colour outside teeth and strips
    """
    image = np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)
    image[:, :] = background
    for row, y0 in enumerate((UPPER_Y0, LOWER_Y0)):
        for i in range(TEETH_PER_ROW):
            x0 = tooth_x0(i)
            image[y0:y0 + TOOTH_H, x0:x0 + TOOTH_W] = WHITE
            if i < TEETH_PER_ROW - 1:
                sx = x0 + TOOTH_W
                color = (0, 0, 0) if (row == 0 and i == dark_strip_after) else GUM
                image[y0:y0 + TOOTH_H, sx:sx + STRIP_W] = color
    return image


@pytest.fixture
def smile_image():
    return build_smile()


@pytest.fixture
def gap_smile_image():
    return build_smile(dark_strip_after=2)


@pytest.fixture
def lip_smile_image():
    """Smile surrounded by a lip-coloured region spanning x 20..79, y 15..44."""
    image = np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)
    image[15:45, 20:80] = LIP
    smile = build_smile()
    inside = smile.any(axis=2)
    image[inside] = smile[inside]
    return image
