"""A Moré–Thuente line search and reporting of optimiser results."""

__all__ = ["reporting", "line_search"]