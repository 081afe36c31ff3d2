r"""Primal-dual interior point method for minimization problems with equality and bound
constraints

.. math::

    \min_x f(x) \quad \text{s.t.} \quad h(x) = 0, \quad x \geq l.

With multipliers ``y`` of the equality constraints, ``z`` of the bounds and the slack
``s = x - l``, Newton's method is applied to the perturbed KKT conditions

.. math::

    F_\mu(x, y, z) = \begin{pmatrix} g - A^T y - z \\ h \\ s z - \mu \end{pmatrix} = 0.

The bound multipliers are eliminated from the Newton system, which is solved for the
primal step and the step of ``y``. The system is scaled with the square roots of the
slacks, such that variables of very different magnitudes are resolved alike. The step
length is limited by the fraction-to-boundary rule, keeping ``s > 0`` and ``z > 0``,
and reduced further by an Armijo line search on the merit :math:`\frac{1}{2}\|F_\mu\|^2`.

The barrier parameter is updated each iteration as
``mu = max(min(sigma, mean(sz)) mean(sz), mu_min)``, which reduces it superlinearly
near the solution. Before each step, bound multipliers smaller than the dual residual
``g - A^T y`` of their variable are raised to it, so variables approaching their bound
shrink geometrically instead of stalling the common step length. The initial ``y``
minimizes the dual residual weighted with the slacks.

"""

from __future__ import annotations

import logging
import time
from typing import Optional

import numpy as np

from ..utils.logging import time_logger
from .optimum_state import (
    OptimumOptions,
    OptimumProblem,
    OptimumResult,
    OptimumState,
    OptimumStatus,
)

__all__ = ["solve", "sensitivity"]

logger = logging.getLogger(__name__)

_BOUND_PUSH: float = 1e-10
"""Slack given to initial variables on or below their bounds."""


def _as_matrix(H: np.ndarray) -> np.ndarray:
    H = np.asarray(H, dtype=float)
    return np.diag(H) if H.ndim == 1 else H


def _solve_newton(
    H: np.ndarray,
    A: np.ndarray,
    z: np.ndarray,
    s: np.ndarray,
    r_dual: np.ndarray,
    r_primal: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """Solves ``(H + Z/S) dx - A^T dy = r_dual`` and ``A dx = r_primal``.

    The variables are scaled with ``sqrt(s)`` and the constraint rows to unit norm.
    Variables of very different magnitudes (trace species, vanishing phases) otherwise
    ruin the conditioning of the system. Right hand sides may have several columns.

    """
    n = s.size
    m = A.shape[0]
    d = np.sqrt(s)
    AD = A * d
    norms = np.linalg.norm(AD, axis=1)
    r = 1.0 / np.where(norms > 0.0, norms, 1.0)
    B = r[:, None] * AD

    K = np.zeros((n + m, n + m))
    K[:n, :n] = d[:, None] * _as_matrix(H) * d + np.diag(z)
    K[:n, n:] = -B.T
    K[n:, :n] = B
    rhs = np.concatenate([(r_dual.T * d).T, (r_primal.T * r).T])
    sol = _solve_linear(K, rhs)
    return (sol[:n].T * d).T, (sol[n:].T * r).T


def _solve_linear(K: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    try:
        return np.linalg.solve(K, rhs)
    except np.linalg.LinAlgError:
        logger.debug("Singular KKT matrix, using least squares.")
        return np.linalg.lstsq(K, rhs, rcond=None)[0]


def _max_step(v: np.ndarray, dv: np.ndarray, tau: float) -> float:
    """Largest step in ``(0, 1]`` keeping ``v + alpha dv >= (1 - tau) v``."""
    neg = dv < 0.0
    if not np.any(neg):
        return 1.0
    return float(min(1.0, np.min(-tau * v[neg] / dv[neg])))


def _residual(
    g: np.ndarray,
    A: np.ndarray,
    h: np.ndarray,
    y: np.ndarray,
    z: np.ndarray,
    s: np.ndarray,
    mu: float,
) -> np.ndarray:
    return np.concatenate([g - A.T @ y - z, h, s * z - mu])


def _evaluate(problem: OptimumProblem, x: np.ndarray):
    f, g, H = problem.objective(x)
    h, A = problem.constraint(x)
    return (
        float(f),
        np.asarray(g, dtype=float),
        np.asarray(H, dtype=float),
        np.asarray(h, dtype=float),
        np.asarray(A, dtype=float).reshape(problem.num_constraints, x.size),
    )


@time_logger(sections=["optimization"])
def solve(
    problem: OptimumProblem,
    state: Optional[OptimumState] = None,
    options: Optional[OptimumOptions] = None,
) -> OptimumResult:
    """Solves the minimization problem, starting from ``state`` if given.

    Parameters:
        problem: The minimization problem.
        state: ``default=None``

            Initial guess. Missing or inconsistent multipliers are initialized
            automatically. Variables on or below their bounds are moved inside.
        options: ``default=None``

            Solver options. Defaults to :class:`OptimumOptions`.

    Returns:
        The result with the exit status and the last iterate. Failure to converge is
        reported by the status of the result.

    """
    options = OptimumOptions() if options is None else options
    start = time.perf_counter()

    n = problem.num_variables
    m = problem.num_constraints
    l = problem.lower

    if state is None or state.x.size != n:
        x = l + 1.0
    else:
        x = np.asarray(state.x, dtype=float).copy()
    s = x - l
    s = np.where(s > 0.0, s, _BOUND_PUSH)
    x = l + s

    if state is not None and state.z.shape == (n,) and np.all(state.z > 0.0):
        z = state.z.copy()
    else:
        z = options.mu_init / s

    f, g, H, h, A = _evaluate(problem, x)

    if state is not None and state.y.shape == (m,):
        y = state.y.copy()
    elif m > 0:
        # Least squares weighted with the slacks, variables far from their bounds
        # determine the multipliers.
        d = np.sqrt(s)
        y = np.linalg.lstsq(d[:, None] * A.T, d * (g - z), rcond=None)[0]
    else:
        y = np.zeros(0)

    status = OptimumStatus.max_iterations
    iterations = 0

    while True:
        error_dual = float(np.max(np.abs(g - A.T @ y - z), initial=0.0))
        error_primal = float(np.max(np.abs(h), initial=0.0))
        error_comp = float(np.max(s * z, initial=0.0))

        logger.debug(
            f"Iteration {iterations}: dual {error_dual:.3e}, primal"
            + f" {error_primal:.3e}, complementarity {error_comp:.3e}"
        )

        if not np.isfinite(error_dual + error_primal + error_comp):
            status = OptimumStatus.infeasible
            break
        if (
            error_dual <= options.tolerance
            and error_primal <= options.tolerance
            and error_comp <= options.complementarity_tolerance
        ):
            status = OptimumStatus.converged
            break
        if iterations >= options.max_iterations:
            status = OptimumStatus.max_iterations
            break
        if (options.cancel is not None and options.cancel()) or (
            options.deadline is not None
            and time.perf_counter() - start > options.deadline
        ):
            status = OptimumStatus.cancelled
            break

        iterations += 1

        # Multipliers below the dual residual make the step of their variable overshoot
        # the bound by orders of magnitude.
        z = np.maximum(z, g - A.T @ y)

        mean_sz = float(np.mean(s * z)) if n > 0 else 0.0
        mu = max(min(options.sigma, mean_sz) * mean_sz, options.mu_min)

        dx, dy = _solve_newton(H, A, z, s, -(g - A.T @ y) + mu / s, -h)
        dz = mu / s - z - (z / s) * dx

        if not (np.all(np.isfinite(dx)) and np.all(np.isfinite(dz))):
            status = OptimumStatus.infeasible
            break

        alpha = min(_max_step(s, dx, options.tau), _max_step(z, dz, options.tau))

        F = _residual(g, A, h, y, z, s, mu)
        pot = 0.5 * float(F @ F)

        accepted = False
        for _ in range(options.max_iter_armijo):
            x_t = x + alpha * dx
            s_t = s + alpha * dx
            y_t = y + alpha * dy
            z_t = z + alpha * dz
            trial = _evaluate(problem, x_t)
            F_t = _residual(trial[1], trial[4], trial[3], y_t, z_t, s_t, mu)
            if np.all(np.isfinite(F_t)):
                pot_t = 0.5 * float(F_t @ F_t)
                if pot_t <= (1.0 - 2.0 * options.armijo_kappa * alpha) * pot:
                    accepted = True
                    break
            alpha *= options.armijo_rho

        if not accepted:
            logger.debug(f"Line search failed in iteration {iterations}.")
            status = OptimumStatus.infeasible
            break

        x, s, y, z = x_t, s_t, y_t, z_t
        f, g, H, h, A = trial

    result = OptimumResult(
        status=status,
        iterations=iterations,
        error_dual=error_dual,
        error_primal=error_primal,
        error_complementarity=error_comp,
        time=time.perf_counter() - start,
        state=OptimumState(x, y, z, f, g, H, h, A),
    )
    if result.converged:
        logger.debug(f"Interior point solver {result}.")
    else:
        logger.warning(f"Interior point solver {result}.")
    return result


def sensitivity(
    state: OptimumState,
    dg_dp: Optional[np.ndarray] = None,
    dh_dp: Optional[np.ndarray] = None,
    lower: Optional[np.ndarray] = None,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Derivatives of the solution ``(x, y, z)`` with respect to parameters ``p``.

    The KKT conditions at the optimum are differentiated, assuming the Jacobian of the
    constraints does not depend on ``x`` (exact for linear constraints).

    Parameters:
        state: A converged optimum.
        dg_dp: ``shape=(n, k)``

            Derivatives of the gradient of the objective with respect to ``k``
            parameters. Zero if not given.
        dh_dp: ``shape=(m, k)``

            Derivatives of the constraint residual. Zero if not given.
        lower: Lower bounds of the variables, zero by default.

    Returns:
        The derivatives ``dx/dp``, ``dy/dp`` and ``dz/dp``.

    Raises:
        ValueError: If the state or the derivatives have inconsistent dimensions.

    """
    state.check_dimensions()
    n = state.x.size
    m = state.y.size
    k = None
    for d in (dg_dp, dh_dp):
        if d is not None:
            k = np.asarray(d).reshape(np.shape(d)[0], -1).shape[1]
    if k is None:
        raise ValueError("No parameter derivatives given.")

    dg_dp = np.zeros((n, k)) if dg_dp is None else np.asarray(dg_dp, dtype=float)
    dh_dp = np.zeros((m, k)) if dh_dp is None else np.asarray(dh_dp, dtype=float)
    dg_dp = dg_dp.reshape(n, k)
    dh_dp = dh_dp.reshape(m, k)

    l = np.zeros(n) if lower is None else np.asarray(lower, dtype=float)
    s = state.x - l
    dx, dy = _solve_newton(state.H, state.A, state.z, s, -dg_dp, -dh_dp)
    dz = -(state.z / s)[:, None] * dx
    return dx, dy, dz
