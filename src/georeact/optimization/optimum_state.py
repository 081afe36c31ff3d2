"""Data structures of the constrained minimization problem

    min f(x)  subject to  h(x) = 0,  x >= l,

solved by :mod:`~georeact.optimization.interior_point`: the problem definition, the
solver options, the iterate (:class:`OptimumState`) and the result with exit status.

Default values of the options ``tolerance`` and ``max_iterations`` can be set in the
section ``[solver]`` of ``georeact.cfg``.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Optional

import numpy as np

import georeact as gr

__all__ = [
    "ObjectiveFunction",
    "ConstraintFunction",
    "OptimumStatus",
    "OptimumState",
    "OptimumProblem",
    "OptimumOptions",
    "OptimumResult",
]

logger = logging.getLogger(__name__)


ObjectiveFunction = Callable[[np.ndarray], tuple[float, np.ndarray, np.ndarray]]
"""Objective ``x -> (f, g, H)`` with the gradient ``g`` and the Hessian ``H``, either
a 2D array or a 1D array representing a diagonal Hessian."""

ConstraintFunction = Callable[[np.ndarray], tuple[np.ndarray, np.ndarray]]
"""Equality constraints ``x -> (h, A)`` with the Jacobian ``A = dh/dx``."""


def _config_value(key: str, default: float) -> float:
    section = gr.config.get("solver", {})
    try:
        return float(section.get(key, default))
    except ValueError:
        logger.warning(
            f"Ignoring invalid value '{section.get(key)}' of '{key}' in georeact.cfg."
        )
        return default


class OptimumStatus(IntEnum):
    """Exit status of the optimization.

    Following the convention of flash exit codes, zero means success.

    """

    converged = 0
    """All convergence criteria are met."""

    max_iterations = 1
    """The maximal number of iterations was reached."""

    infeasible = 2
    """No admissible step could be found, or the iterate became non-finite."""

    cancelled = 3
    """The deadline passed or the cancellation callback returned True."""


@dataclass
class OptimumState:
    """An iterate of the optimization: primal variables, multipliers and the values of
    objective and constraints.

    Sizes: ``x, g, z`` have the number of variables ``n``, ``y, h`` the number of
    equality constraints ``m``. ``A`` has ``shape=(m, n)``, ``H`` ``shape=(n, n)`` or
    ``(n,)`` if diagonal.

    """

    x: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Primal variables."""

    y: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Multipliers of the equality constraints."""

    z: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Multipliers of the bound constraints."""

    f: float = 0.0
    """Value of the objective."""

    g: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Gradient of the objective."""

    H: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    """Hessian of the objective (dense or diagonal)."""

    h: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Residual of the equality constraints."""

    A: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    """Jacobian of the equality constraints."""

    def check_dimensions(self) -> None:
        """Checks the consistency of the sizes of all fields.

        Raises:
            ValueError: If any size is inconsistent.

        """
        n = self.x.size
        m = self.y.size
        errors = []
        if self.g.shape != (n,):
            errors.append(f"g {self.g.shape}")
        if self.z.shape != (n,):
            errors.append(f"z {self.z.shape}")
        if self.h.shape != (m,):
            errors.append(f"h {self.h.shape}")
        if self.A.shape != (m, n):
            errors.append(f"A {self.A.shape}")
        if self.H.shape not in ((n, n), (n,)):
            errors.append(f"H {self.H.shape}")
        if errors:
            raise ValueError(
                f"Inconsistent dimensions for {n} variables and {m} constraints: "
                + ", ".join(errors)
            )

    def copy(self) -> OptimumState:
        return OptimumState(
            self.x.copy(),
            self.y.copy(),
            self.z.copy(),
            self.f,
            self.g.copy(),
            self.H.copy(),
            self.h.copy(),
            self.A.copy(),
        )


@dataclass
class OptimumProblem:
    """Definition of a minimization problem with equality and bound constraints."""

    num_variables: int

    num_constraints: int

    objective: ObjectiveFunction

    constraint: ConstraintFunction

    lower: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Lower bounds ``l`` of the variables. Defaults to zero."""

    def __post_init__(self) -> None:
        if np.size(self.lower) == 0:
            self.lower = np.zeros(self.num_variables)
        self.lower = np.asarray(self.lower, dtype=float)
        if self.lower.shape != (self.num_variables,):
            raise ValueError(
                f"Expecting {self.num_variables} lower bounds, got {self.lower.shape}."
            )


@dataclass
class OptimumOptions:
    """Parameters of the interior point solver."""

    tolerance: float = field(default_factory=lambda: _config_value("tolerance", 1e-8))
    """Tolerance of the maximum norms of the dual and primal residuals."""

    complementarity_tolerance: float = 1e-10
    """Tolerance of the largest complementarity product ``(x_i - l_i) z_i``."""

    max_iterations: int = field(
        default_factory=lambda: int(_config_value("max_iterations", 200))
    )

    tau: float = 0.995
    """Fraction-to-boundary parameter, the share of the distance to the bounds a step
    may cover."""

    sigma: float = 0.1
    """Upper bound of the centering parameter of the barrier update
    ``mu = min(sigma, mean(sz)) mean(sz)``."""

    mu_min: float = 1e-12
    """Lower bound of the barrier parameter, which must be smaller than the
    complementarity tolerance."""

    mu_init: float = 1e-2
    """Barrier parameter of the initial bound multipliers ``z = mu_init / (x - l)``,
    if none are given."""

    armijo_rho: float = 0.5
    """Reduction factor of the step size in the line search."""

    armijo_kappa: float = 1e-4
    """Slope of the sufficient decrease condition."""

    max_iter_armijo: int = 40

    deadline: Optional[float] = None
    """Wall-clock time budget of a solve in seconds."""

    cancel: Optional[Callable[[], bool]] = None
    """Callback polled each iteration, the solve is cancelled if it returns True."""


@dataclass
class OptimumResult:
    """Result of a solve. Non-convergence is reported by :attr:`status`."""

    status: OptimumStatus = OptimumStatus.max_iterations

    iterations: int = 0

    error_dual: float = np.inf
    """Maximum norm of ``g - A^T y - z``."""

    error_primal: float = np.inf
    """Maximum norm of ``h``."""

    error_complementarity: float = np.inf
    """Largest product ``(x_i - l_i) z_i``."""

    time: float = 0.0
    """Wall-clock time of the solve in seconds."""

    state: OptimumState = field(default_factory=OptimumState)
    """The last iterate."""

    @property
    def converged(self) -> bool:
        return self.status == OptimumStatus.converged

    def __str__(self) -> str:
        return (
            f"{self.status.name} after {self.iterations} iterations"
            + f" (dual {self.error_dual:.2e}, primal {self.error_primal:.2e},"
            + f" complementarity {self.error_complementarity:.2e},"
            + f" {self.time:.3e} s)"
        )
