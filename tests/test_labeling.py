"""Tests for 4-connected component labeling."""
import numpy as np
import pytest
from smilescan.errors import EmptyImage, InvalidInput
from smilescan.labeling import Component, label_components


class TestTwoBlocks:
    """Two disjoint 2x2 blocks in a 10x10 mask."""

    @pytest.fixture
    def result(self):
        mask = np.zeros((10, 10), dtype=np.uint8)
        mask[1:3, 1:3] = 1
        mask[5:7, 6:8] = 1
        return label_components(mask)

    def test_two_components(self, result):
        """Test exactly two components are found."""
        _, components = result
        assert len(components) == 2

    def test_areas(self, result):
        """Test both areas are 4."""
        _, components = result
        assert [c.area for c in components] == [4, 4]

    def test_bounding_boxes(self, result):
        """Test boxes match the blocks' exact inclusive extents."""
        _, components = result
        assert components[0].box == (1, 1, 2, 2)
        assert components[1].box == (6, 5, 7, 6)

    def test_centroids(self, result):
        """Test centroid is the mean member coordinate."""
        _, components = result
        assert (components[0].cx, components[0].cy) == (1.5, 1.5)
        assert (components[1].cx, components[1].cy) == (6.5, 5.5)

    def test_label_grid(self, result):
        """Test label grid marks each block with its id and leaves background 0."""
        labels, _ = result
        assert labels.shape == (10, 10)
        assert labels.dtype == np.int32
        assert (labels[1:3, 1:3] == 1).all()
        assert (labels[5:7, 6:8] == 2).all()
        assert (labels > 0).sum() == 8


class TestConnectivity:
    """Test the 4-connectivity rule."""

    def test_diagonal_pixels_are_separate(self):
        """Test diagonally adjacent pixels form two components."""
        mask = np.zeros((3, 3), dtype=bool)
        mask[0, 0] = True
        mask[1, 1] = True
        _, components = label_components(mask)
        assert len(components) == 2
        assert all(c.area == 1 for c in components)

    def test_anti_diagonal_pixels_are_separate(self):
        """Test the other diagonal direction as well."""
        mask = np.zeros((3, 3), dtype=bool)
        mask[0, 2] = True
        mask[1, 1] = True
        mask[2, 0] = True
        _, components = label_components(mask)
        assert len(components) == 3

    def test_horizontal_and_vertical_neighbours_merge(self):
        """Test a plus shape is a single component."""
        mask = np.zeros((3, 3), dtype=bool)
        mask[1, :] = True
        mask[:, 1] = True
        _, components = label_components(mask)
        assert len(components) == 1
        assert components[0].area == 5
        assert components[0].box == (0, 0, 2, 2)

    def test_u_shape_single_label(self):
        """Test arms joined only at the bottom get one label."""
        mask = np.zeros((4, 5), dtype=bool)
        mask[0:4, 0] = True
        mask[0:4, 4] = True
        mask[3, :] = True
        labels, components = label_components(mask)
        assert len(components) == 1
        assert set(np.unique(labels)) == {0, 1}
        assert components[0].area == 4 + 4 + 3


class TestDeterminism:
    """Test raster-order labeling."""

    def test_raster_order_ids(self):
        """Test the component whose first pixel comes first in raster order gets label 1."""
        mask = np.zeros((5, 5), dtype=bool)
        mask[3:5, 0:2] = True  # lower-left, but larger
        mask[0, 4] = True      # top-right single pixel
        _, components = label_components(mask)
        assert components[0].box == (4, 0, 4, 0)
        assert components[1].box == (0, 3, 1, 4)
        assert [c.label for c in components] == [1, 2]

    def test_repeatable(self):
        """Test repeated runs give identical labels and components."""
        rng = np.random.default_rng(7)
        mask = rng.random((40, 50)) > 0.6
        labels_a, components_a = label_components(mask)
        labels_b, components_b = label_components(mask)
        assert np.array_equal(labels_a, labels_b)
        assert components_a == components_b

    def test_every_foreground_pixel_labeled_once(self):
        """Test total area equals foreground count and ids are 1..N."""
        rng = np.random.default_rng(11)
        mask = rng.random((30, 30)) > 0.5
        labels, components = label_components(mask)
        assert sum(c.area for c in components) == int(mask.sum())
        assert [c.label for c in components] == list(range(1, len(components) + 1))
        assert ((labels > 0) == mask).all()


class TestComponentInvariants:
    """Test Component record invariants."""

    def test_invariants_hold(self):
        """Test box bounds and area limits for random masks."""
        rng = np.random.default_rng(3)
        mask = rng.random((25, 35)) > 0.55
        labels, components = label_components(mask)
        h, w = mask.shape
        for c in components:
            assert 0 <= c.min_x <= c.max_x < w
            assert 0 <= c.min_y <= c.max_y < h
            assert 1 <= c.area <= c.width * c.height
            assert (labels == c.label).sum() == c.area

    def test_properties(self):
        """Test width, height and aspect ratio."""
        c = Component(label=1, min_x=2, min_y=3, max_x=7, max_y=12, area=60, cx=4.5, cy=7.5)
        assert c.width == 6
        assert c.height == 10
        assert abs(c.aspect_ratio - 0.6) < 1e-9


class TestLargeMask:
    """Test the iterative fill on large inputs."""

    def test_full_mask_no_recursion_limit(self):
        """Test a 400x400 solid mask is one component without stack overflow."""
        mask = np.ones((400, 400), dtype=bool)
        labels, components = label_components(mask)
        assert len(components) == 1
        assert components[0].area == 160000
        assert components[0].box == (0, 0, 399, 399)
        assert (components[0].cx, components[0].cy) == (199.5, 199.5)

    def test_serpentine_path(self):
        """Test a long winding single-pixel path is one component."""
        mask = np.zeros((101, 101), dtype=bool)
        mask[0::2, :] = True
        for row in range(1, 101, 2):
            col = 100 if (row // 2) % 2 == 0 else 0
            mask[row, col] = True
        _, components = label_components(mask)
        assert len(components) == 1


class TestInvalidMasks:
    """Test malformed masks fail fast."""

    def test_empty_mask_no_components(self):
        """Test all-background mask returns no components."""
        labels, components = label_components(np.zeros((4, 4), dtype=bool))
        assert components == []
        assert not labels.any()

    def test_zero_size(self):
        """Test zero-size mask raises EmptyImage."""
        with pytest.raises(EmptyImage):
            label_components(np.zeros((0, 5), dtype=bool))

    def test_wrong_ndim(self):
        """Test 3D mask raises InvalidInput."""
        with pytest.raises(InvalidInput):
            label_components(np.zeros((4, 4, 3), dtype=bool))

    def test_not_array(self):
        """Test plain lists are rejected."""
        with pytest.raises(InvalidInput):
            label_components([[1, 0], [0, 1]])
