# treestem

Building blocks for finding tree stems in terrestrial laser scanning point
clouds. Point clouds are passed as columns: `[xs, ys, zs]`.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `treestem.classes`

- `Raster`: a 2D grid of point counts over an XY bounding box. It computes
  its size (`set_dims`, `set_matrix_size`), maps between pixels and world
  coordinates (`abs_center`, `pix_position`), lists the pixels a circle
  crosses (`raster_circle`), counts points (`update_matrix`) and clears
  every cell farther than a radius from a point (`clean_radius`).
- `HoughCircle`: one candidate circle with its centre, radius and vote count.
- `HoughCenters`: a group of candidate circles. `get_centers` averages their
  centres and picks the most-voted circle as `main_circle`.
- `VoxelGrid`: a sparse registry that turns points into voxel or pixel keys
  (`voxel_hash`, `pixel_hash`), counts them (`update_voxel_registry`,
  `update_pixel_registry`) and reports counts (`count`). Cell indices are
  unsigned 32-bit, so points below an offset wrap around.
- `IndexedCloud` and `IndexedCloudParts`: a column-wise cloud split into
  parts by a key per point, optionally with point ids and a second index.
  `ids_as_float` returns a part's point ids as floats.

### `treestem.hough`

- `raster_counts(points, pixel_size)` rasterises a slice into a `Raster`.
- `hough_centers(raster, max_radius, min_den, min_votes)` votes for circle
  centres at every radius from one pixel up to `max_radius`, and groups the
  circles found by proximity (within three times `max_radius`).
- `single_center(raster, max_radius, min_den, min_votes)` collects every
  candidate circle of a single stem slice into one `HoughCenters`.
- `assign_tree_ids(disks, dist_max, count_density, min_layers)` labels, in
  place, stacked disks that share a position with a common tree id, and
  drops ids with fewer than `min_layers` disks.

### `treestem.cloud`

- `tree_ids_from_map(xy, xymap, ids, length, circle)` gives each point the
  id of the first mapped stem it lies near (within a circle of radius
  `length`, or a square of side `length`), or 0.
- `voxel_index(cloud, voxel_spacing)` gives each point a voxel key, shifted
  so that the smallest key is 0.

### `treestem.optim`

- `treestem.optim.line_search.line_search_mt` is a Moré–Thuente line search
  for the strong Wolfe conditions. The objective maps a point to
  `(value, gradient)`; the search returns the step, the new point and its
  gradient.
- `treestem.optim.reporting.report` turns the end state of an iterative run
  into an `OptimResult` (`x`, `success`, `value`, `iterations`, `err`).
  Its `conv_failure_switch` chooses what happens without convergence:
  0 returns the best guess, 1 also warns, 2 raises `OptimError` carrying the
  best guess.

## Examples

Finding a stem in a slice:

```python
import numpy as np
from treestem.hough import raster_counts, single_center

angles = np.linspace(0, 2 * np.pi, 400, endpoint=False)
slice_ = [
    list(0.15 * np.cos(angles) + 1.0),
    list(0.15 * np.sin(angles) + 1.0),
    list(np.full(400, 1.3)),
]

raster = raster_counts(slice_, 0.025)
stem = single_center(raster, 0.25, 0.1, 3).main_circle
print(stem.x_center, stem.y_center, stem.radius)
```

A line search along the steepest-descent direction:

```python
import numpy as np
from treestem.optim.line_search import line_search_mt

def objective(x):
    return float(np.sum((x - 3.0) ** 2)), 2 * (x - 3.0)

x0 = np.zeros(2)
_, grad0 = objective(x0)
step, x_new, grad_new = line_search_mt(1.0, x0, grad0, -grad0, objective)
print(step, x_new)
```

## What it does not do

- It does not read point cloud files; clouds are passed in as columns.
- It does not fit circles or cylinders to stem points by least squares or
  RANSAC; stem positions and radii come from the Hough search only.
- `treestem.optim` holds a line search and result reporting, not complete
  optimisers: there is no Newton, conjugate-gradient, quasi-Newton or
  particle-swarm minimiser, and no handling of box constraints.