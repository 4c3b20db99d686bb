"""Tests for overlay rendering."""
import base64

import numpy as np
from smilescan.labeling import Component
from smilescan.visualization import (
    GAP_COLOR,
    LIP_COLOR,
    encode_png_data_uri,
    render_overlay,
    tooth_color,
)


def block(label, x0, y0, w=6, h=10):
    return Component(
        label=label, min_x=x0, min_y=y0, max_x=x0 + w - 1, max_y=y0 + h - 1,
        area=w * h, cx=x0 + (w - 1) / 2, cy=y0 + (h - 1) / 2,
    )


class TestToothColor:
    """Test continuous ratio -> colour mapping."""

    def test_zero_is_red(self):
        """Test ratio 0 maps to pure red."""
        assert tooth_color(0.0, 2.0) == (255, 0, 0)

    def test_ideal_is_green(self):
        """Test ratio at or above ideal maps to pure green."""
        assert tooth_color(2.0, 2.0) == (0, 255, 0)
        assert tooth_color(50.0, 2.0) == (0, 255, 0)

    def test_continuous(self):
        """Test intermediate ratios blend, greener as ratio grows."""
        greens = [tooth_color(r / 10, 2.0)[1] for r in range(0, 21)]
        assert all(a <= b for a, b in zip(greens, greens[1:]))
        assert tooth_color(1.0, 2.0) == (128, 128, 0)


class TestRenderOverlay:
    """Test overlay drawing."""

    def setup_method(self):
        self.image = np.full((40, 60, 3), 40, dtype=np.uint8)

    def test_same_dimensions_new_array(self):
        """Test output has the input size and the input is untouched."""
        before = self.image.copy()
        out = render_overlay(self.image, [block(1, 10, 10)], [5.0])
        assert out.shape == (40, 60, 3)
        assert out.dtype == np.uint8
        assert out is not self.image
        assert np.array_equal(self.image, before)

    def test_rgba_input_gives_rgb(self):
        """Test alpha is dropped from the overlay."""
        rgba = np.zeros((40, 60, 4), dtype=np.uint8)
        out = render_overlay(rgba, [], [])
        assert out.shape == (40, 60, 3)

    def test_nothing_to_draw_is_identity(self):
        """Test empty inputs reproduce the image."""
        out = render_overlay(self.image, [], [])
        assert np.array_equal(out, self.image)

    def test_tooth_outline_colour(self):
        """Test tooth box outline uses the ratio colour."""
        out = render_overlay(self.image, [block(1, 10, 10)], [0.0])
        assert tuple(out[10, 10]) == (255, 0, 0)
        out = render_overlay(self.image, [block(1, 10, 10)], [10.0])
        assert tuple(out[10, 10]) == (0, 255, 0)

    def test_tooth_interior_tinted(self):
        """Test tooth box interior is blended toward its colour."""
        out = render_overlay(self.image, [block(1, 10, 10)], [10.0])
        interior = out[14, 12]
        assert interior[1] > 40
        assert interior[0] < interior[1]

    def test_gap_shaded(self):
        """Test gap region moves toward the gap colour."""
        out = render_overlay(self.image, [], [], gaps=[(30, 5, 31, 14)])
        shaded = out[8, 30].astype(int)
        assert shaded[0] > 40
        assert abs(shaded[0] - GAP_COLOR[0]) < abs(40 - GAP_COLOR[0])
        assert tuple(out[20, 20]) == (40, 40, 40)

    def test_lip_box_outlined(self):
        """Test lip box edge is drawn in the lip colour."""
        out = render_overlay(self.image, [], [], lip_box=(5, 5, 50, 30))
        assert tuple(out[5, 20]) == LIP_COLOR
        assert tuple(out[18, 28]) == (40, 40, 40)

    def test_summary_text_drawn(self):
        """Test summary text changes pixels in the top-left corner."""
        plain = render_overlay(self.image, [], [])
        text = render_overlay(self.image, [], [], summary="Score 90")
        assert not np.array_equal(plain[:15, :40], text[:15, :40])

    def test_deterministic(self):
        """Test same inputs give identical overlays."""
        args = (self.image, [block(1, 10, 10)], [1.5], [(30, 5, 31, 14)], (5, 5, 50, 30), "x")
        assert np.array_equal(render_overlay(*args), render_overlay(*args))


class TestEncodePngDataUri:
    """Test overlay encoding for the API."""

    def test_data_uri(self):
        """Test result is a decodable PNG data URI."""
        uri = encode_png_data_uri(np.zeros((8, 8, 3), dtype=np.uint8))
        assert uri.startswith("data:image/png;base64,")
        payload = base64.b64decode(uri.split(",", 1)[1])
        assert payload.startswith(b"\x89PNG\r\n\x1a\n")
