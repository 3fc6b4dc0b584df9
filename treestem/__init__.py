"""Tree stem detection in laser scanning point clouds: rasters, Hough search, voxel keys."""

__version__ = "0.1.0"
__all__ = ["classes", "hough", "cloud", "optim"]