"""Turning the end state of an optimiser run into a result."""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Callable, Sequence, Union

import numpy as np

__all__ = ["OptimError", "OptimResult", "report"]

Value = Union[float, np.ndarray]


class OptimError(RuntimeError):
    """Raised when an optimiser fails to converge and a strict switch is set."""

    def __init__(self, message: str, best_guess: np.ndarray, iterations: int, err: float) -> None:
        super().__init__(message)
        self.best_guess = best_guess
        self.iterations = iterations
        self.err = err


@dataclass
class OptimResult:
    """Outcome of an optimiser run."""

    x: np.ndarray
    success: bool
    value: Value
    iterations: int
    err: float


def _evaluate(objective: Callable[[np.ndarray], Value], x: np.ndarray) -> Value:
    result = np.asarray(objective(x), dtype=float)
    return float(result) if result.ndim == 0 else result


def report(
    x: Sequence[float],
    objective: Callable[[np.ndarray], Value],
    err: float,
    err_tol: float,
    iterations: int,
    iter_max: int,
    conv_failure_switch: int = 0,
) -> OptimResult:
    """Build the result of a run ending at ``x``.

    ``conv_failure_switch`` selects what happens without convergence:
    0 returns the best guess quietly, 1 returns it with a warning and
    2 raises :class:`OptimError` carrying the best guess.
    """
    if conv_failure_switch not in (0, 1, 2):
        raise ValueError(f"unrecognized conv_failure_switch value: {conv_failure_switch}")

    best = np.asarray(x, dtype=float).ravel().copy()
    converged = err <= err_tol and iterations <= iter_max

    if not converged:
        message = (
            "iter_max reached before convergence could be achieved "
            f"(iterations: {iterations}, error: {err})"
        )
        if conv_failure_switch == 1:
            warnings.warn(f"{message}; returned best guess", RuntimeWarning, stacklevel=2)
        elif conv_failure_switch == 2:
            raise OptimError(message, best, iterations, err)

    return OptimResult(
        x=best,
        success=converged,
        value=_evaluate(objective, best),
        iterations=iterations,
        err=err,
    )