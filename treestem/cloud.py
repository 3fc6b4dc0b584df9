"""Point-wise helpers: tree ids from a stem map and voxel indices."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from treestem.classes import VoxelGrid

__all__ = ["tree_ids_from_map", "voxel_index"]


def tree_ids_from_map(
    xy: Sequence[Sequence[float]],
    xymap: Sequence[Sequence[float]],
    ids: Sequence[int],
    length: float = 2.5,
    circle: bool = True,
) -> List[int]:
    """Give every point the id of the first mapped stem it lies near, else 0.

    With ``circle`` a point belongs to a stem within ``length`` of it; otherwise
    it must lie inside the square of side ``length`` centred on the stem.
    """
    if len(xy) < 2 or len(xymap) < 2:
        raise ValueError("xy and xymap need an x and a y column")
    xs, ys = xy[0], xy[1]
    if len(xs) != len(ys):
        raise ValueError("x and y columns must have the same length")
    if len(xymap[0]) < len(ids) or len(xymap[1]) < len(ids):
        raise ValueError("the map needs one position per id")

    refs = list(zip(xymap[0], xymap[1], ids))
    half = length / 2

    def inside(x: float, y: float, xref: float, yref: float) -> bool:
        if circle:
            return float(np.hypot(x - xref, y - yref)) < length
        return abs(x - xref) < half and abs(y - yref) < half

    return [
        next((tid for xref, yref, tid in refs if inside(x, y, xref, yref)), 0)
        for x, y in zip(xs, ys)
    ]


def voxel_index(cloud: Sequence[Sequence[float]], voxel_spacing: float = 0.05) -> List[int]:
    """Return a voxel key per point, shifted so that the smallest key is 0."""
    if len(cloud) < 3:
        raise ValueError("cloud needs x, y and z columns")
    xs, ys, zs = (np.asarray(col, dtype=float) for col in cloud[:3])
    if xs.size == 0:
        raise ValueError("cannot index an empty cloud")
    if ys.size != xs.size or zs.size != xs.size:
        raise ValueError("all cloud columns must have the same length")
    if not voxel_spacing > 0:
        raise ValueError(f"voxel spacing must be positive, got {voxel_spacing}")

    grid = VoxelGrid(float(xs.min()), float(ys.min()), float(zs.min()), voxel_spacing)
    keys = [grid.voxel_hash(x, y, z) for x, y, z in zip(xs.tolist(), ys.tolist(), zs.tolist())]
    lowest = min(keys)
    return [key - lowest for key in keys]