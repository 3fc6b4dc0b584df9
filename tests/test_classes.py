import math
import statistics

import numpy as np
import pytest

from treestem.classes import (
    HoughCenters,
    HoughCircle,
    IndexedCloudParts,
    Raster,
    VoxelGrid,
)


def make_raster(min_x=0.0, max_x=1.0, min_y=0.0, max_y=0.5, pixel=0.25):
    raster = Raster(min_x=min_x, max_x=max_x, min_y=min_y, max_y=max_y, pixel_size=pixel)
    raster.set_dims()
    raster.set_matrix_size()
    return raster


def test_dims_and_matrix_shape():
    raster = make_raster()
    assert (raster.x_dim, raster.y_dim) == (4, 2)
    assert raster.matrix.shape == (raster.x_dim, raster.y_dim)
    assert raster.matrix.sum() == 0


def test_set_dims_rejects_non_positive_pixel():
    raster = Raster(max_x=1.0, max_y=1.0, pixel_size=0.0)
    with pytest.raises(ValueError):
        raster.set_dims()


def test_set_matrix_size_keeps_counts():
    raster = make_raster()
    raster.update_matrix(0.1, 0.1)
    raster.max_x = 2.0
    raster.set_dims()
    raster.set_matrix_size()
    assert raster.matrix.shape == (raster.x_dim, raster.y_dim)
    assert raster.matrix[0, 0] == 1


def test_center_position_round_trip():
    raster = make_raster()
    for i in range(raster.x_dim):
        for j in range(raster.y_dim):
            assert raster.pix_position(*raster.abs_center(i, j)) == (i, j)


def test_abs_center_lies_inside_its_pixel():
    raster = make_raster()
    cx, cy = raster.abs_center(2, 1)
    assert 2 * raster.pixel_size < cx - raster.min_x < 3 * raster.pixel_size
    assert 1 * raster.pixel_size < cy - raster.min_y < 2 * raster.pixel_size


def test_update_matrix_counts_points():
    raster = make_raster()
    points = [(0.1, 0.1), (0.12, 0.13), (0.6, 0.3), (0.9, 0.45)]
    for x, y in points:
        raster.update_matrix(x, y)
    assert raster.matrix.sum() == len(points)
    assert raster.max_count == raster.matrix.max()
    assert raster.matrix[raster.pix_position(0.1, 0.1)] == 2


def test_update_matrix_ignores_outside_points():
    raster = make_raster()
    raster.update_matrix(-0.1, 0.2)
    raster.update_matrix(0.5, 0.6)
    raster.update_matrix(1.0, 0.25)  # on the upper edge: pixel index equals x_dim
    assert raster.matrix.sum() == 0
    assert raster.max_count == 0


def test_raster_circle_pixels_lie_on_circle():
    raster = make_raster(-1.0, 1.0, -1.0, 1.0, 0.05)
    radius = 0.5
    pixels = raster.raster_circle(radius, 0.0, 0.0)
    assert len(pixels) > 4
    half_diagonal = raster.pixel_size * math.sqrt(2) / 2
    centres = [raster.abs_center(px, py) for px, py in pixels]
    for cx, cy in centres:
        assert abs(math.hypot(cx, cy) - radius) <= half_diagonal + 1e-9
    assert any(cx > 0.4 for cx, _ in centres)
    assert any(cx < -0.4 for cx, _ in centres)
    assert any(cy > 0.4 for _, cy in centres)
    assert any(cy < -0.4 for _, cy in centres)


def test_raster_circle_zero_radius_is_centre_pixel():
    raster = make_raster()
    assert raster.raster_circle(0.0, 0.3, 0.2) == {raster.pix_position(0.3, 0.2)}


def test_clean_radius_zeros_far_cells():
    raster = make_raster(0.0, 1.0, 0.0, 1.0, 0.1)
    for _ in range(3):
        raster.update_matrix(0.05, 0.05)
    for _ in range(2):
        raster.update_matrix(0.15, 0.05)
    for _ in range(5):
        raster.update_matrix(0.95, 0.95)
    assert raster.max_count == 5

    raster.clean_radius(0.05, 0.05, 0.2)
    assert raster.matrix[raster.pix_position(0.95, 0.95)] == 0
    assert raster.matrix[raster.pix_position(0.05, 0.05)] == 3
    assert raster.matrix[raster.pix_position(0.15, 0.05)] == 2
    assert raster.max_count == 3

    raster.clean_radius(0.05, 0.05, 0.05)
    assert raster.matrix[raster.pix_position(0.15, 0.05)] == 0
    assert raster.matrix.sum() == raster.max_count


def test_clean_radius_outside_center_resets_only_max_count():
    raster = make_raster()
    raster.update_matrix(0.1, 0.1)
    before = raster.matrix.copy()
    raster.clean_radius(5.0, 5.0, 1.0)
    assert raster.max_count == 0
    assert np.array_equal(raster.matrix, before)


def test_get_centers_averages_and_picks_first_most_voted():
    circles = [
        HoughCircle(0.0, 0.0, 0.1, 3),
        HoughCircle(2.0, 4.0, 0.2, 7),
        HoughCircle(1.0, 2.0, 0.3, 7),
    ]
    centers = HoughCenters(circles=circles)
    centers.get_centers()
    assert centers.avg_x == pytest.approx(statistics.mean(c.x_center for c in circles))
    assert centers.avg_y == pytest.approx(statistics.mean(c.y_center for c in circles))
    assert centers.main_circle is circles[1]


def test_get_centers_empty_leaves_state():
    centers = HoughCenters(avg_x=5.0, avg_y=6.0)
    centers.get_centers()
    assert (centers.avg_x, centers.avg_y) == (5.0, 6.0)
    assert centers.main_circle == HoughCircle()
    assert centers.tree_id == 0


def test_voxel_hasher_layout():
    grid = VoxelGrid(0.0, 0.0, 0.0, 1.0)
    assert grid.voxel_hasher(1, 0, 0) == 2**15
    assert grid.voxel_hasher(0, 1, 0) == 2**30
    assert grid.voxel_hasher(0, 0, 5) == 5


def test_voxel_hasher_shifts_wrap_at_32_bits():
    grid = VoxelGrid(0.0, 0.0, 0.0, 1.0)
    assert grid.voxel_hasher(0, 4, 0) == grid.voxel_hasher(0, 0, 0)
    assert grid.voxel_hasher(2**17, 0, 0) == grid.voxel_hasher(0, 0, 0)


def test_pixel_hasher_layout():
    grid = VoxelGrid(0.0, 0.0, 0.0, 1.0)
    assert grid.pixel_hasher(1, 2) == 2**20 + 2
    assert grid.pixel_hasher(0, 7) == 7


def test_xyz_order_floors_from_offsets():
    grid = VoxelGrid(1.0, 2.0, 3.0, 0.5)
    assert grid.xyz_order(1.0, 2.0, 3.0) == (0, 0, 0)
    assert grid.xyz_order(1.74, 2.5, 3.99) == (1, 1, 1)


def test_xyz_order_below_offset_wraps_unsigned():
    grid = VoxelGrid(1.0, 2.0, 3.0, 0.5)
    assert grid.xyz_order(0.9, 2.0, 3.0)[0] == 2**32 - 1


def test_voxel_registry_counts():
    grid = VoxelGrid(0.0, 0.0, 0.0, 1.0)
    grid.update_voxel_registry(0.2, 0.3, 0.4)
    grid.update_voxel_registry(0.8, 0.1, 0.9)
    grid.update_voxel_registry(2.5, 0.1, 0.9)
    assert grid.count(0.5, 0.5, 0.5) == 2
    assert grid.count(2.1, 0.0, 0.0) == 1
    assert grid.count(9.0, 9.0, 9.0) == 0
    assert len(grid.voxels) == 2
    assert grid.voxels[grid.voxel_hash(2.5, 0.1, 0.9)] == grid.xyz_order(2.5, 0.1, 0.9)


def test_pixel_registry_ignores_height():
    grid = VoxelGrid(0.0, 0.0, 0.0, 1.0)
    grid.update_pixel_registry(0.5, 1.5, 0.1)
    grid.update_pixel_registry(0.5, 1.5, 7.0)
    assert grid.count(0.5, 1.5, 3.0, voxel=False) == 2
    key = grid.pixel_hash(0.5, 1.5, 0.0)
    assert grid.pixels[key] == grid.xyz_order(0.5, 1.5, 0.0)[:2]


CLOUD = [
    [0.0, 1.0, 2.0, 3.0],
    [10.0, 11.0, 12.0, 13.0],
    [20.0, 21.0, 22.0, 23.0],
]


def test_parts_by_identifier():
    parts = IndexedCloudParts(CLOUD, [3, 1, 3, 1])
    assert list(parts.parts) == [3, 1]
    assert parts.parts[3].cloud == [[0.0, 2.0], [10.0, 12.0], [20.0, 22.0]]
    assert parts.parts[3].identifier == 3
    assert parts.parts[1].cloud[0] == [1.0, 3.0]
    assert parts.segment_ids == [1, 3]
    assert parts.parts[1].unique_ids == []


def test_parts_with_splitter():
    ids = [5, 6, 7, 8]
    parts = IndexedCloudParts(CLOUD, ids, [1, 2, 1, 2])
    assert parts.parts[1].unique_ids == [5, 7]
    assert parts.parts[2].cloud[0] == [1.0, 3.0]
    assert parts.parts[2].identifier == 2
    assert parts.segment_ids == sorted(set(ids))
    assert parts.ids_as_float(2) == [6.0, 8.0]
    assert parts.parts[1].indexer == []


def test_parts_with_sub_splitter():
    parts = IndexedCloudParts(CLOUD, [5, 6, 7, 8], [1, 2, 1, 2], [9, 9, 8, 8])
    assert parts.parts[1].indexer == [9, 8]
    assert parts.parts[2].indexer == [9, 8]


def test_ids_as_float_unknown_key_is_empty():
    parts = IndexedCloudParts(CLOUD, [5, 6, 7, 8], [1, 2, 1, 2])
    assert parts.ids_as_float(42) == []
    assert 42 not in parts.parts


def test_mismatched_lengths_raise():
    with pytest.raises(ValueError):
        IndexedCloudParts(CLOUD, [1, 2, 3])
    with pytest.raises(ValueError):
        IndexedCloudParts(CLOUD, [1, 2, 3, 4], [1, 2])
    with pytest.raises(ValueError):
        IndexedCloudParts(CLOUD, [1, 2, 3, 4], None, [1, 1, 1, 1])