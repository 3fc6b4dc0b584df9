"""Rasters, Hough circle containers, voxel registries and split point clouds."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from itertools import repeat
from typing import Dict, List, Optional, Sequence, Set, Tuple

import numpy as np

_UINT32_MASK = 0xFFFFFFFF

Pixel = Tuple[int, int]


@dataclass(eq=False)
class Raster:
    """A 2D grid of point counts over an XY bounding box."""

    min_x: float = 0.0
    max_x: float = 0.0
    min_y: float = 0.0
    max_y: float = 0.0
    pixel_size: float = 0.0
    min_z: float = 0.0
    max_z: float = 0.0
    max_count: int = 0
    x_dim: int = 0
    y_dim: int = 0
    matrix: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=np.int64))

    def set_dims(self) -> None:
        """Compute the number of pixels along each axis from the extent."""
        if not self.pixel_size > 0:
            raise ValueError(f"pixel size must be positive, got {self.pixel_size}")
        self.x_dim = abs(math.ceil((self.max_x - self.min_x) / self.pixel_size))
        self.y_dim = abs(math.ceil((self.max_y - self.min_y) / self.pixel_size))

    def set_matrix_size(self) -> None:
        """Resize the count matrix to the current dimensions, keeping existing counts."""
        resized = np.zeros((self.x_dim, self.y_dim), dtype=np.int64)
        rows = min(self.x_dim, self.matrix.shape[0])
        cols = min(self.y_dim, self.matrix.shape[1])
        resized[:rows, :cols] = self.matrix[:rows, :cols]
        self.matrix = resized

    def abs_center(self, x: int, y: int) -> Tuple[float, float]:
        """Return the world coordinates of the centre of pixel (x, y)."""
        x_cen = self.min_x + (self.pixel_size / 2) + (x * self.pixel_size)
        y_cen = self.min_y + (self.pixel_size / 2) + (y * self.pixel_size)
        return x_cen, y_cen

    def pix_position(self, x: float, y: float) -> Pixel:
        """Return the pixel holding world point (x, y); may lie outside the grid."""
        x_pix = math.floor((x - self.min_x) / self.pixel_size)
        y_pix = math.floor((y - self.min_y) / self.pixel_size)
        return x_pix, y_pix

    def raster_circle(self, radius: float, cx: float, cy: float) -> Set[Pixel]:
        """Return the pixels crossed by a circle; indices may fall outside the grid."""
        n_points = math.ceil((2 * math.pi * radius) / self.pixel_size)
        angle_dist = 2 * math.pi / n_points if n_points > 0 else math.inf
        pixels: Set[Pixel] = set()
        angle = 0.0
        while angle < 2 * math.pi:
            x = math.cos(angle) * radius + cx
            y = math.sin(angle) * radius + cy
            pixels.add(self.pix_position(x, y))
            angle += angle_dist
        return pixels

    def update_matrix(self, x: float, y: float) -> None:
        """Count one point at (x, y) if it falls inside the raster."""
        if x < self.min_x or x > self.max_x or y < self.min_y or y > self.max_y:
            return
        px, py = self.pix_position(x, y)
        if px >= self.x_dim or py >= self.y_dim:
            return
        self.matrix[px, py] += 1
        count = int(self.matrix[px, py])
        if count > self.max_count:
            self.max_count = count

    def clean_radius(self, x: float, y: float, radius: float) -> None:
        """Zero every cell farther than radius from (x, y) and recompute max_count."""
        self.max_count = 0
        if x < self.min_x or x > self.max_x or y < self.min_y or y > self.max_y:
            return
        cx, cy = self.abs_center(*self.pix_position(x, y))
        rows, cols = self.matrix.shape
        half = self.pixel_size / 2
        xs = self.min_x + half + np.arange(rows) * self.pixel_size
        ys = self.min_y + half + np.arange(cols) * self.pixel_size
        dist = np.sqrt((xs[:, None] - cx) ** 2 + (ys[None, :] - cy) ** 2)
        self.matrix[dist > radius] = 0
        self.max_count = int(self.matrix.max()) if self.matrix.size else 0


@dataclass
class HoughCircle:
    """A candidate circle and the number of votes it gathered."""

    x_center: float = 0.0
    y_center: float = 0.0
    radius: float = 0.0
    n_votes: int = 0


@dataclass
class HoughCenters:
    """A group of candidate circles belonging to one stem cross-section."""

    circles: List[HoughCircle] = field(default_factory=list)
    main_circle: HoughCircle = field(default_factory=HoughCircle)
    avg_x: float = 0.0
    avg_y: float = 0.0
    aggregate_radius: float = 0.0
    low_z: float = 0.0
    up_z: float = 0.0
    tree_id: int = 0

    def get_centers(self) -> None:
        """Average the circle centres and pick the first most-voted circle."""
        if not self.circles:
            return
        main = self.circles[0]
        for circle in self.circles:
            if circle.n_votes > main.n_votes:
                main = circle
        self.main_circle = main
        self.avg_x = sum(c.x_center for c in self.circles) / len(self.circles)
        self.avg_y = sum(c.y_center for c in self.circles) / len(self.circles)


@dataclass(eq=False)
class VoxelGrid:
    """A sparse registry of voxel and pixel counts on a regular grid.

    Cell indices are unsigned 32-bit values: points below an offset wrap around.
    """

    xoffset: float
    yoffset: float
    zoffset: float
    spacing: float
    counter: Dict[int, int] = field(default_factory=dict)
    voxels: Dict[int, Tuple[int, int, int]] = field(default_factory=dict)
    pixels: Dict[int, Tuple[int, int]] = field(default_factory=dict)

    def voxel_hasher(self, nx: int, ny: int, nz: int) -> int:
        """Combine voxel indices into one key (shifts are 32-bit, as stored)."""
        tx = (nx << 15) & _UINT32_MASK
        ty = (ny << 30) & _UINT32_MASK
        return tx + ty + nz

    def pixel_hasher(self, nx: int, ny: int) -> int:
        """Combine pixel indices into one key (shift is 32-bit, as stored)."""
        return ((nx << 20) & _UINT32_MASK) + ny

    def xyz_order(self, x: float, y: float, z: float) -> Tuple[int, int, int]:
        """Return the voxel indices of a point."""
        return (
            math.floor((x - self.xoffset) / self.spacing) & _UINT32_MASK,
            math.floor((y - self.yoffset) / self.spacing) & _UINT32_MASK,
            math.floor((z - self.zoffset) / self.spacing) & _UINT32_MASK,
        )

    def update_voxel_registry(self, x: float, y: float, z: float) -> None:
        """Count a point in its voxel."""
        vox = self.xyz_order(x, y, z)
        key = self.voxel_hasher(*vox)
        self.counter[key] = self.counter.get(key, 0) + 1
        self.voxels[key] = vox

    def voxel_hash(self, x: float, y: float, z: float) -> int:
        """Return the voxel key of a point."""
        return self.voxel_hasher(*self.xyz_order(x, y, z))

    def update_pixel_registry(self, x: float, y: float, z: float) -> None:
        """Count a point in its XY pixel."""
        nx, ny, _ = self.xyz_order(x, y, z)
        key = self.pixel_hasher(nx, ny)
        self.counter[key] = self.counter.get(key, 0) + 1
        self.pixels[key] = (nx, ny)

    def pixel_hash(self, x: float, y: float, z: float) -> int:
        """Return the pixel key of a point."""
        nx, ny, _ = self.xyz_order(x, y, z)
        return self.pixel_hasher(nx, ny)

    def count(self, x: float, y: float, z: float, voxel: bool = True) -> int:
        """Return the registered count of the voxel (or pixel) holding a point."""
        key = self.voxel_hash(x, y, z) if voxel else self.pixel_hash(x, y, z)
        return self.counter.get(key, 0)


@dataclass
class IndexedCloud:
    """Columns of a point cloud part with its point ids and sub-index."""

    cloud: List[List[float]] = field(default_factory=list)
    unique_ids: List[int] = field(default_factory=list)
    indexer: List[int] = field(default_factory=list)
    identifier: int = 0


class IndexedCloudParts:
    """A column-wise point cloud split into parts by a key per point."""

    def __init__(
        self,
        full_cloud: Sequence[Sequence[float]],
        identifier: Sequence[int],
        splitter: Optional[Sequence[int]] = None,
        sub_splitter: Optional[Sequence[int]] = None,
    ) -> None:
        n = len(identifier)
        if any(len(column) != n for column in full_cloud):
            raise ValueError("every cloud column must have one value per identifier")
        if splitter is not None and len(splitter) != n:
            raise ValueError("splitter must have one value per identifier")
        if sub_splitter is not None:
            if splitter is None:
                raise ValueError("a sub-splitter needs a splitter")
            if len(sub_splitter) != n:
                raise ValueError("sub-splitter must have one value per identifier")

        self.parts: Dict[int, IndexedCloud] = {}
        self.segment_ids: List[int] = sorted(set(identifier))

        keys = identifier if splitter is None else splitter
        self._populate(full_cloud, keys)

        if splitter is not None:
            for key, point_id in zip(splitter, identifier):
                self.parts[key].unique_ids.append(point_id)
        if sub_splitter is not None:
            for key, sub_id in zip(splitter, sub_splitter):
                self.parts[key].indexer.append(sub_id)

    def _populate(self, full_cloud: Sequence[Sequence[float]], keys: Sequence[int]) -> None:
        rows = zip(*full_cloud) if full_cloud else repeat(())
        for key, row in zip(keys, rows):
            part = self.parts.get(key)
            if part is None:
                part = IndexedCloud(cloud=[[] for _ in full_cloud], identifier=key)
                self.parts[key] = part
            for column, value in zip(part.cloud, row):
                column.append(value)

    def ids_as_float(self, key: int) -> List[float]:
        """Return the point ids of a part as floats; empty for an unknown part."""
        part = self.parts.get(key)
        return [float(v) for v in part.unique_ids] if part else []