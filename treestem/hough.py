"""Point-count rasters and Hough-transform circle search over stem slices."""

from __future__ import annotations

import math
from typing import Iterator, List, Sequence, Tuple

import numpy as np

from treestem.classes import HoughCenters, HoughCircle, Raster

__all__ = ["raster_counts", "hough_centers", "single_center", "assign_tree_ids"]


def _bounding_box(points: Sequence[Sequence[float]]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    if len(points) < 2:
        raise ValueError("points need at least an x and a y column")
    xs = np.asarray(points[0], dtype=float)
    ys = np.asarray(points[1], dtype=float)
    zs = np.asarray(points[2], dtype=float) if len(points) > 2 else np.zeros_like(xs)
    if xs.size == 0:
        raise ValueError("cannot rasterise an empty point set")
    if ys.size != xs.size or zs.size != xs.size:
        raise ValueError("all point columns must have the same length")
    return xs, ys, zs


def raster_counts(points: Sequence[Sequence[float]], pixel_size: float) -> Raster:
    """Rasterise the XY positions of column-wise points into a count grid."""
    xs, ys, zs = _bounding_box(points)
    raster = Raster(
        min_x=float(xs.min()),
        max_x=float(xs.max()),
        min_y=float(ys.min()),
        max_y=float(ys.max()),
        min_z=float(zs.min()),
        max_z=float(zs.max()),
        pixel_size=pixel_size,
    )
    raster.set_dims()
    raster.set_matrix_size()
    raster.max_count = 0
    for x, y in zip(xs.tolist(), ys.tolist()):
        raster.update_matrix(x, y)
    return raster


def _vote_raster(raster: Raster, max_radius: float) -> Raster:
    votes = Raster(
        min_x=raster.min_x - max_radius,
        min_y=raster.min_y - max_radius,
        max_x=raster.max_x + max_radius,
        max_y=raster.max_y + max_radius,
        pixel_size=raster.pixel_size,
    )
    votes.set_dims()
    votes.set_matrix_size()
    return votes


def _candidate_circles(
    raster: Raster, max_radius: float, min_den: float, min_votes: int
) -> Iterator[List[HoughCircle]]:
    """Yield, for each tested radius, the circles that gathered enough votes."""
    min_count = math.ceil(raster.max_count * min_den)
    vote_grid = _vote_raster(raster, max_radius)
    rows, cols = vote_grid.matrix.shape

    dense = raster.matrix[: raster.x_dim, : raster.y_dim] >= min_count
    pixels = [tuple(int(v) for v in p) for p in np.argwhere(dense)]
    centers = [raster.abs_center(px, py) for px, py in pixels]

    rad = raster.pixel_size
    while rad <= max_radius:
        votes = np.zeros((rows, cols), dtype=np.int64)
        for cx, cy in centers:
            for vx, vy in vote_grid.raster_circle(rad, cx, cy):
                if 0 <= vx < rows and 0 <= vy < cols:
                    votes[vx, vy] += 1

        hits = np.argwhere((votes >= min_votes) & (votes > 0))
        circles = []
        for vx, vy in hits:
            x_center, y_center = vote_grid.abs_center(int(vx), int(vy))
            circles.append(
                HoughCircle(
                    x_center=x_center,
                    y_center=y_center,
                    radius=rad,
                    n_votes=int(votes[vx, vy]),
                )
            )
        yield circles
        rad += raster.pixel_size


def hough_centers(
    raster: Raster,
    max_radius: float = 0.25,
    min_den: float = 0.1,
    min_votes: int = 3,
) -> List[HoughCenters]:
    """Find circle candidates on a count raster and group them by proximity."""
    groups: List[HoughCenters] = []
    inclusion_radius = max_radius * 3

    for circles in _candidate_circles(raster, max_radius, min_den, min_votes):
        for hc in circles:
            for group in groups:
                dist = math.hypot(hc.x_center - group.avg_x, hc.y_center - group.avg_y)
                if dist < inclusion_radius:
                    group.circles.append(hc)
                    break
            else:
                groups.append(
                    HoughCenters(
                        circles=[hc],
                        avg_x=hc.x_center,
                        avg_y=hc.y_center,
                        low_z=raster.min_z,
                        up_z=raster.max_z,
                        aggregate_radius=inclusion_radius,
                    )
                )

    for group in groups:
        group.get_centers()
    return groups


def single_center(
    raster: Raster,
    max_radius: float = 0.25,
    min_den: float = 0.1,
    min_votes: int = 3,
) -> HoughCenters:
    """Collect every circle candidate of a single stem slice into one group."""
    candidates = HoughCenters(low_z=raster.min_z, up_z=raster.max_z)
    for circles in _candidate_circles(raster, max_radius, min_den, min_votes):
        candidates.circles.extend(circles)
    candidates.get_centers()
    return candidates


def assign_tree_ids(
    disks: List[HoughCenters],
    dist_max: float,
    count_density: float,
    min_layers: int = 1,
) -> List[HoughCenters]:
    """Label stacked disks that share a position with a common tree id, in place."""
    max_count = max((len(d.circles) for d in disks), default=0)
    min_count = int(max_count * count_density)

    def eligible(disk: HoughCenters) -> bool:
        return disk.tree_id == 0 and len(disk.circles) >= min_count

    next_id = 1
    for disk in disks:
        if not eligible(disk):
            continue
        disk.tree_id = next_id
        next_id += 1
        x, y = disk.main_circle.x_center, disk.main_circle.y_center
        for other in disks:
            if not eligible(other):
                continue
            dist = math.hypot(x - other.main_circle.x_center, y - other.main_circle.y_center)
            if dist < dist_max:
                other.tree_id = disk.tree_id

    stacks = [0] * next_id
    for disk in disks:
        if disk.tree_id > 0:
            stacks[disk.tree_id] += 1

    for disk in disks:
        if stacks[disk.tree_id] < min_layers:
            disk.tree_id = 0
    return disks