"""Moré–Thuente line search satisfying the strong Wolfe conditions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

__all__ = ["line_search_mt"]

Objective = Callable[[np.ndarray], Tuple[float, Sequence[float]]]

_ITER_MAX = 100
_STEP_MIN = 0.0
_STEP_MAX = 10.0
_XTOL = 1e-04
_EXTRAP_DELTA = 4.0


@dataclass
class _Point:
    """A step length with the function value and directional derivative there."""

    step: float
    f: float
    d: float

    def assign(self, other: "_Point") -> None:
        self.step, self.f, self.d = other.step, other.f, other.d


def _div(a: float, b: float) -> float:
    """Floating-point division with IEEE results instead of exceptions."""
    try:
        return a / b
    except ZeroDivisionError:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)


def _sqrt(value: float) -> float:
    return math.sqrt(value) if value >= 0 else math.nan


def _evaluate(objective: Objective, x: np.ndarray) -> Tuple[float, np.ndarray]:
    value, grad = objective(x)
    return float(value), np.asarray(grad, dtype=float).ravel()


def _mt_step(
    best: _Point,
    other: _Point,
    trial: _Point,
    bracket: bool,
    step_min: float,
    step_max: float,
) -> Tuple[int, float, bool]:
    """Pick the next trial step and update the interval of uncertainty in place.

    Returns the case that applied, the new step and whether a minimiser is bracketed.
    """
    sgnd = trial.d * _div(best.d, abs(best.d))
    st, fs, ds = trial.step, trial.f, trial.d
    sb, fb, db = best.step, best.f, best.d

    if fs > fb:
        info, bound = 1, True
        theta = _div(3 * (fb - fs), st - sb) + db + ds
        s = max(abs(theta), abs(db), abs(ds))
        ts, bs, dss = _div(theta, s), _div(db, s), _div(ds, s)
        gamma = s * _sqrt(ts * ts - bs * dss)
        if st < sb:
            gamma = -gamma
        p = (gamma - db) + theta
        q = ((gamma - db) + gamma) + ds
        r = _div(p, q)
        step_c = sb + r * (st - sb)
        step_q = sb + (_div(db, _div(fb - fs, st - sb) + db) / 2.0) * (st - sb)
        if abs(step_c - sb) < abs(step_q - sb):
            step_f = step_c
        else:
            step_f = step_c + (step_q - step_c) / 2
        bracket = True
    elif sgnd < 0.0:
        info, bound = 2, False
        theta = _div(3 * (fb - fs), st - sb) + db + ds
        s = max(abs(theta), abs(db), abs(ds))
        ts, bs, dss = _div(theta, s), _div(db, s), _div(ds, s)
        gamma = s * _sqrt(ts * ts - bs * dss)
        if st > sb:
            gamma = -gamma
        p = (gamma - ds) + theta
        q = ((gamma - ds) + gamma) + db
        r = _div(p, q)
        step_c = st + r * (sb - st)
        step_q = st + _div(ds, ds - db) * (sb - st)
        step_f = step_c if abs(step_c - st) > abs(step_q - st) else step_q
        bracket = True
    elif abs(ds) < abs(db):
        info, bound = 3, True
        theta = _div(3 * (fb - fs), st - sb) + db + ds
        s = max(abs(theta), abs(db), abs(ds))
        ts, bs, dss = _div(theta, s), _div(db, s), _div(ds, s)
        gamma = s * _sqrt(max(0.0, ts * ts - bs * dss))
        if st > sb:
            gamma = -gamma
        p = (gamma - ds) + theta
        q = (gamma + (db - ds)) + gamma
        r = _div(p, q)
        if r < 0.0 and gamma != 0.0:
            step_c = st + r * (sb - st)
        elif st > sb:
            step_c = step_max
        else:
            step_c = step_min
        step_q = st + _div(ds, ds - db) * (sb - st)
        if bracket:
            step_f = step_c if abs(st - step_c) < abs(st - step_q) else step_q
        else:
            step_f = step_c if abs(st - step_c) > abs(st - step_q) else step_q
    else:
        info, bound = 4, False
        if bracket:
            so, fo, do = other.step, other.f, other.d
            theta = _div(3 * (fs - fo), so - st) + do + ds
            s = max(abs(theta), abs(do), abs(ds))
            ts, os_, dss = _div(theta, s), _div(do, s), _div(ds, s)
            gamma = s * _sqrt(ts * ts - os_ * dss)
            if st > so:
                gamma = -gamma
            p = (gamma - ds) + theta
            q = ((gamma - ds) + gamma) + do
            r = _div(p, q)
            step_f = st + r * (so - st)
        elif st > sb:
            step_f = step_max
        else:
            step_f = step_min

    if fs > fb:
        other.assign(trial)
    else:
        if sgnd < 0.0:
            other.assign(best)
        best.assign(trial)

    step_f = min(step_max, step_f)
    step_f = max(step_min, step_f)
    step = step_f

    if bracket and bound:
        if other.step > best.step:
            step = min(best.step + 0.66 * (other.step - best.step), step)
        else:
            step = max(best.step + 0.66 * (other.step - best.step), step)

    return info, step, bracket


def line_search_mt(
    step: float,
    x: Sequence[float],
    grad: Optional[Sequence[float]],
    direc: Sequence[float],
    objective: Objective,
    wolfe_cons_1: float = 1e-03,
    wolfe_cons_2: float = 0.90,
) -> Tuple[float, np.ndarray, np.ndarray]:
    """Search along ``direc`` from ``x`` for a step meeting the strong Wolfe conditions.

    ``objective`` maps a point to ``(value, gradient)``. ``grad`` is the gradient
    already known at ``x``; it is only checked for size, as the search evaluates
    the objective afresh. Returns the step taken, the new point and its gradient.
    If ``direc`` is not a descent direction the step is returned unchanged with
    the starting point.
    """
    x0 = np.asarray(x, dtype=float).ravel().copy()
    d_vec = np.asarray(direc, dtype=float).ravel()
    if d_vec.size != x0.size:
        raise ValueError(f"direction has {d_vec.size} values, point has {x0.size}")
    if grad is not None and np.asarray(grad).size != x0.size:
        raise ValueError("gradient and point must have the same size")

    f_init, grad_x = _evaluate(objective, x0)
    dgrad_init = float(np.dot(grad_x, d_vec))
    if dgrad_init >= 0.0:
        return step, x0, grad_x

    step = float(step)
    dgrad_test = wolfe_cons_1 * dgrad_init
    width = _STEP_MAX - _STEP_MIN
    width_old = 2 * width

    best = _Point(0.0, f_init, dgrad_init)
    other = _Point(0.0, f_init, dgrad_init)

    bracket = False
    stage_1 = True
    infoc = 1
    iteration = 0

    while True:
        iteration += 1

        if bracket:
            st_min = min(best.step, other.step)
            st_max = max(best.step, other.step)
        else:
            st_min = best.step
            st_max = step + _EXTRAP_DELTA * (step - best.step)

        step = min(max(step, _STEP_MIN), _STEP_MAX)

        if (
            (bracket and (step <= st_min or step >= st_max))
            or iteration >= _ITER_MAX - 1
            or infoc == 0
            or (bracket and st_max - st_min <= _XTOL * st_max)
        ):
            step = best.step

        x_new = x0 + step * d_vec
        f_step, grad_new = _evaluate(objective, x_new)
        dgrad = float(np.dot(grad_new, d_vec))
        armijo_check_val = f_init + step * dgrad_test

        info = 0
        if (bracket and (step <= st_min or step >= st_max)) or infoc == 0:
            info = 6
        if step == _STEP_MAX and f_step <= armijo_check_val and dgrad <= dgrad_test:
            info = 5
        if step == _STEP_MIN and (f_step > armijo_check_val or dgrad >= dgrad_test):
            info = 4
        if iteration >= _ITER_MAX:
            info = 3
        if bracket and st_max - st_min <= _XTOL * st_max:
            info = 2
        if f_step <= armijo_check_val and abs(dgrad) <= wolfe_cons_2 * (-dgrad_init):
            info = 1

        if info != 0:
            return step, x_new, grad_new

        if (
            stage_1
            and f_step <= armijo_check_val
            and dgrad >= min(wolfe_cons_1, wolfe_cons_2) * dgrad_init
        ):
            stage_1 = False

        trial = _Point(step, f_step, dgrad)

        if stage_1 and f_step <= best.f and f_step > armijo_check_val:
            best_mod = _Point(best.step, best.f - best.step * dgrad_test, best.d - dgrad_test)
            other_mod = _Point(other.step, other.f - other.step * dgrad_test, other.d - dgrad_test)
            trial_mod = _Point(step, f_step - step * dgrad_test, dgrad - dgrad_test)

            infoc, step, bracket = _mt_step(
                best_mod, other_mod, trial_mod, bracket, st_min, st_max
            )

            best = _Point(
                best_mod.step, best_mod.f + best_mod.step * dgrad_test, best_mod.d + dgrad_test
            )
            other = _Point(
                other_mod.step, other_mod.f + other_mod.step * dgrad_test, other_mod.d + dgrad_test
            )
        else:
            infoc, step, bracket = _mt_step(best, other, trial, bracket, st_min, st_max)

        if bracket:
            if abs(other.step - best.step) >= 0.66 * width_old:
                step = best.step + 0.5 * (other.step - best.step)
            width_old = width
            width = abs(other.step - best.step)