r"""Chemical equilibrium by minimization of the Gibbs energy.

For given temperature, pressure and element amounts ``b`` of the equilibrium
partition, the amounts ``n`` of the equilibrium species solve

.. math::

    \min_n \frac{G(n)}{RT} = \sum_i n_i \frac{\mu_i(T, P, n)}{RT}
    \quad \text{s.t.} \quad W n = b, \quad n \geq 0,

where ``W`` is the formula matrix of the equilibrium partition (including the charge
row). The gradient of the objective is :math:`\mu / RT` and its Hessian the
derivatives of the logarithms of activities, since the Gibbs energy is homogeneous of
degree one in ``n``. The minimization is performed with the interior point solver of
:mod:`georeact.optimization`. The multipliers of the mass balance are the element
potentials :math:`\mu_e / RT`, stored in the state for warm starts.

Species composed of an element with zero amount are excluded from the minimization
(their amount is zero), and linearly dependent mass balance rows are removed.

Without a usable previous solution, the initial guess is the solution of the linear
program with the standard chemical potentials (of gases at the pressure of the
system), shifted into the interior of the feasible set.

"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import scipy.optimize

from ..chemistry._core import P_REF, R_IDEAL_MOL, PhysicalState
from ..chemistry.elements import CHARGE_ELEMENT
from ..chemistry.partition import Partition
from ..chemistry.states import ChemicalState
from ..chemistry.system import ChemicalSystem
from ..chemistry.utils import independent_rows
from ..optimization import (
    OptimumOptions,
    OptimumProblem,
    OptimumResult,
    OptimumState,
    OptimumStatus,
    interior_point,
)
from ..utils.logging import time_logger
from .equilibrium_problem import EquilibriumProblem
from .inverse_problem import EquilibriumInverseProblem

__all__ = [
    "EquilibriumOptions",
    "EquilibriumResult",
    "EquilibriumSensitivity",
    "EquilibriumSolver",
    "equilibrate",
]

logger = logging.getLogger(__name__)


def _default_optimum_options() -> OptimumOptions:
    # Trace species need a barrier far below their amounts.
    return OptimumOptions(complementarity_tolerance=1e-18, mu_min=1e-20)


@dataclass
class EquilibriumOptions:
    """Parameters of the equilibrium and inverse equilibrium solvers."""

    optimum: OptimumOptions = field(default_factory=_default_optimum_options)
    """Options of the Gibbs energy minimization."""

    warm_start: bool = True
    """Use the amounts and multipliers of the given state as initial guess, if all
    amounts of the equilibrium species are positive."""

    epsilon: float = 1e-10
    """Share of a feasible point with positive amounts mixed into the solution of the
    linear program of a cold start. Amounts are relative to the largest amounts the
    elements of each species permit."""

    retry_epsilon: float = 1e-4
    """Share of the feasible point in the cold start of a second minimization, if the
    first one failed. Zero disables the retry."""

    exclusion_tolerance: float = 1e-14
    """Element amounts below this value (relative to the largest element amount) are
    considered zero. Species composed of such elements are excluded."""

    consistency_tolerance: float = 1e-6
    """Residual of linearly dependent mass balance rows, relative to the largest
    element amount, above which a warning is logged."""

    inverse_tolerance: float = 1e-8
    """Tolerance of the maximum norm of the residual of inverse problems."""

    inverse_max_iterations: int = 100

    titrant_initial_amount: float = 1e-6
    """Initial amount of titrants, if no initial guess is given."""

    armijo_rho: float = 0.5
    """Reduction factor of the step size in the line search of inverse problems."""

    armijo_kappa: float = 1e-4

    max_iter_armijo: int = 40


@dataclass
class EquilibriumResult:
    """Result of an equilibrium computation. Non-convergence is reported by
    :attr:`status`, never raised."""

    status: OptimumStatus = OptimumStatus.max_iterations

    optimum: OptimumResult = field(default_factory=OptimumResult)
    """Result of the last Gibbs energy minimization."""

    iterations: int = 0
    """Interior point iterations, summed over all minimizations."""

    inverse_iterations: int = 0
    """Newton iterations of an inverse problem."""

    inverse_residual: float = np.nan
    """Maximum norm of the residual of an inverse problem."""

    titrant_amounts: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Amounts of the titrants solving an inverse problem."""

    time: float = 0.0
    """Wall-clock time in seconds."""

    @property
    def converged(self) -> bool:
        return self.status == OptimumStatus.converged

    def __str__(self) -> str:
        msg = f"{self.status.name} after {self.iterations} iterations"
        if self.inverse_iterations > 0:
            msg += (
                f" ({self.inverse_iterations} inverse iterations,"
                + f" residual {self.inverse_residual:.2e})"
            )
        return msg + f" in {self.time:.3e} s"


@dataclass
class EquilibriumSensitivity:
    """Derivatives of the amounts of the equilibrium species at an equilibrium."""

    dndT: np.ndarray
    """Derivatives with respect to temperature, ``shape=(num_equilibrium_species,)``."""

    dndP: np.ndarray
    """Derivatives with respect to pressure, ``shape=(num_equilibrium_species,)``."""

    dndb: np.ndarray
    """Derivatives with respect to the equilibrium element amounts,
    ``shape=(num_equilibrium_species, num_equilibrium_elements)``.

    Columns of elements with zero amount or of dependent mass balance rows are zero.

    """


@dataclass
class _Solution:
    """Data of the last converged minimization."""

    T: float
    P: float
    n: np.ndarray
    active: np.ndarray
    """Positions of the species of the minimization among the equilibrium species."""
    rows: np.ndarray
    """Positions of the mass balance rows among the equilibrium elements."""
    optimum: OptimumState


def _species_scales(W: np.ndarray, b: np.ndarray, is_charge: np.ndarray) -> np.ndarray:
    """Largest amounts of the species which each of their elements permits alone.

    Species without such an element, e.g. made of charge only, are scaled with the
    largest element amount.

    """
    Wm = W[~is_charge]
    bm = b[~is_charge]
    positive = Wm > 0.0
    limits = np.where(positive, bm[:, None] / np.where(positive, Wm, 1.0), np.inf)
    scales = np.min(limits, axis=0, initial=np.inf)
    fallback = max(float(np.max(np.abs(b), initial=0.0)), 1.0)
    return np.where(np.isfinite(scales) & (scales > 0.0), scales, fallback)


class EquilibriumSolver:
    """Solver of direct and inverse equilibrium problems.

    Solvers hold scratch data of their last computation and must not be shared
    between threads. The system is only read.

    Parameters:
        system: The chemical system.
        partition: ``default=None``

            Partition of the species. All species are in equilibrium by default.
        options: ``default=None``

            Solver options. Defaults to :class:`EquilibriumOptions`.

    """

    def __init__(
        self,
        system: ChemicalSystem,
        partition: Optional[Partition] = None,
        options: Optional[EquilibriumOptions] = None,
    ) -> None:
        self.system: ChemicalSystem = system
        self.partition: Partition = (
            Partition(system) if partition is None else partition
        )
        self.options: EquilibriumOptions = (
            EquilibriumOptions() if options is None else options
        )
        self._solution: Optional[_Solution] = None

    def set_partition(self, partition: Partition) -> None:
        self.partition = partition
        self._solution = None

    def set_options(self, options: EquilibriumOptions) -> None:
        self.options = options

    # --- direct problems ------------------------------------------------------------

    @time_logger(sections=["equilibrium"])
    def solve(
        self,
        state: ChemicalState,
        T: Optional[float] = None,
        P: Optional[float] = None,
        be: Optional[np.ndarray] = None,
    ) -> EquilibriumResult:
        """Computes the equilibrium amounts of the equilibrium species.

        On success, the state is updated with ``T``, ``P``, the species amounts and the
        multipliers. Amounts of kinetic and inert species are kept and enter the
        activities of the equilibrium species.

        Parameters:
            state: The state to equilibrate, also the initial guess.
            T: ``default=None``

                Temperature, the one of the state if not given.
            P: ``default=None``

                Pressure, the one of the state if not given.
            be: ``default=None``

                Amounts of the equilibrium elements of the partition. Computed from the
                equilibrium species of the state if not given.

        Raises:
            ValueError: If ``be`` does not match the equilibrium elements.

        """
        start = time.perf_counter()
        T = state.T if T is None else float(T)
        P = state.P if P is None else float(P)

        ie = self.partition.indices_equilibrium_species
        ee = self.partition.indices_equilibrium_elements
        We = self.system.formula_matrix[np.ix_(ee, ie)]
        if be is None:
            be = We @ state.n[ie]
        be = np.asarray(be, dtype=float)
        if be.shape != (ee.size,):
            raise ValueError(
                f"Expecting {ee.size} equilibrium element amounts, got {be.shape}."
            )

        names = self.system.element_names
        is_charge = np.array([names[e] == CHARGE_ELEMENT for e in ee], dtype=bool)
        threshold = self.options.exclusion_tolerance * max(
            1.0, float(np.max(np.abs(be), initial=0.0))
        )
        if np.any(be[~is_charge] < -threshold):
            negative = [names[e] for e, v in zip(ee, be) if v < -threshold]
            logger.warning(f"Negative amounts of elements {negative}.")
            return EquilibriumResult(
                status=OptimumStatus.infeasible, time=time.perf_counter() - start
            )

        absent = (~is_charge) & (be <= threshold)
        active = np.flatnonzero(~np.any(We[absent] != 0.0, axis=0))
        candidates = np.flatnonzero(~absent)
        Wc = We[np.ix_(candidates, active)]
        independent = independent_rows(Wc)
        rows = candidates[independent]
        A = We[np.ix_(rows, active)]
        b = be[rows]
        self._check_dependent_rows(
            Wc, be[candidates], independent, [names[e] for e in ee[candidates]]
        )

        n_full = state.n.copy()
        n_full[ie] = 0.0

        if active.size == 0:
            state.T, state.P = T, P
            state.set_species_amounts(n_full)
            self._solution = None
            return EquilibriumResult(
                status=OptimumStatus.converged, time=time.perf_counter() - start
            )

        glob = ie[active]
        RT = R_IDEAL_MOL * T
        g0 = self.system.standard_gibbs_energies(T, P).val[glob] / RT

        def objective(x: np.ndarray):
            n = n_full.copy()
            n[glob] = x
            ln_a = self.system.ln_activities(T, P, n)
            g = g0 + ln_a.val[glob]
            H = ln_a.ddn[np.ix_(glob, glob)]
            return float(x @ g), g, H

        def constraint(x: np.ndarray):
            return A @ x - b, A

        problem = OptimumProblem(active.size, rows.size, objective, constraint)
        # Gases at the pressure of the system in the linear program of a cold start.
        c0 = g0 + self._gas_pressure_terms(P)[glob]
        scales = _species_scales(Wc, be[candidates], is_charge[candidates])
        guess = self._initial_guess(
            state, glob, ee[rows], c0, A, b, scales, self.options.epsilon
        )
        optimum = interior_point.solve(problem, guess, self.options.optimum)
        iterations = optimum.iterations

        # A more central start copes with phases which vanish at the equilibrium.
        if (
            optimum.status
            in (OptimumStatus.max_iterations, OptimumStatus.infeasible)
            and self.options.retry_epsilon > 0.0
        ):
            logger.debug(
                f"Retrying equilibrium at T={T:g}, P={P:g} from a cold start after"
                + f" {optimum.status.name}."
            )
            guess = self._initial_guess(
                state,
                glob,
                ee[rows],
                c0,
                A,
                b,
                scales,
                self.options.retry_epsilon,
                warm=False,
            )
            optimum = interior_point.solve(problem, guess, self.options.optimum)
            iterations += optimum.iterations

        result = EquilibriumResult(
            status=optimum.status,
            optimum=optimum,
            iterations=iterations,
            time=time.perf_counter() - start,
        )
        if not result.converged:
            logger.warning(f"Equilibrium at T={T:g}, P={P:g} not found: {result}.")
            self._solution = None
            return result

        n_full[glob] = optimum.state.x
        y = np.zeros(self.system.num_elements)
        y[ee[rows]] = optimum.state.y
        z = state.z.copy()
        z[ie] = 0.0
        z[glob] = optimum.state.z

        state.T, state.P = T, P
        state.set_species_amounts(n_full)
        state.y = y
        state.z = z

        self._solution = _Solution(T, P, n_full.copy(), active, rows, optimum.state)
        logger.debug(f"Equilibrium at T={T:g}, P={P:g}: {result}.")
        return result

    def _gas_pressure_terms(self, P: float) -> np.ndarray:
        """``ln(P / P_REF)`` for the species of gaseous phases, zero otherwise."""
        terms = np.zeros(self.system.num_species)
        for phase, s in zip(self.system.phases, self.system.phase_slices):
            if phase.state == PhysicalState.gaseous:
                terms[s] = np.log(P / P_REF)
        return terms

    def _check_dependent_rows(
        self,
        W: np.ndarray,
        b: np.ndarray,
        independent: np.ndarray,
        names: list[str],
    ) -> None:
        """Logs a warning if the amounts of elements with linearly dependent mass
        balance rows contradict the amounts of the other elements."""
        dependent = np.setdiff1d(np.arange(b.size), independent)
        if dependent.size == 0 or W.shape[1] == 0:
            return
        # Any solution of the independent rows gives the implied amounts.
        x = np.linalg.lstsq(W[independent], b[independent], rcond=None)[0]
        residual = np.abs(W[dependent] @ x - b[dependent])
        scale = max(1.0, float(np.max(np.abs(b), initial=0.0)))
        inconsistent = residual > self.options.consistency_tolerance * scale
        if np.any(inconsistent):
            logger.warning(
                "Ignoring inconsistent amounts of the linearly dependent elements "
                + f"{[names[i] for i in dependent[inconsistent]]}, residuals "
                + f"{residual[inconsistent]}."
            )

    def _initial_guess(
        self,
        state: ChemicalState,
        glob: np.ndarray,
        rows: np.ndarray,
        c0: np.ndarray,
        A: np.ndarray,
        b: np.ndarray,
        scales: np.ndarray,
        eps: float,
        warm: bool = True,
    ) -> OptimumState:
        n0 = state.n[glob]
        if warm and self.options.warm_start and np.all(n0 > 0.0):
            y0 = state.y[rows]
            z0 = state.z[glob]
            return OptimumState(
                x=n0.copy(),
                y=y0.copy() if np.any(y0 != 0.0) else np.zeros(0),
                z=z0.copy() if np.all(z0 > 0.0) else np.zeros(0),
            )

        # Linear programs in amounts relative to the scales of the species, with rows
        # of unit magnitude, resolve trace elements next to the solvent.
        As = A * scales
        row_scales = np.maximum(np.abs(b), np.max(np.abs(As), axis=1))
        As = As / row_scales[:, None]
        bs = b / row_scales

        lp = scipy.optimize.linprog(
            c0 * scales, A_eq=As, b_eq=bs, bounds=(0.0, None), method="highs"
        )
        if lp.status != 0:
            logger.debug(f"Initial linear program failed: {lp.message}")
            return OptimumState(x=eps * scales)
        x0 = np.maximum(lp.x, 0.0)

        # Mixing in a feasible point with amounts bounded away from zero keeps the
        # mass balance and moves all species inside.
        k = x0.size
        center = scipy.optimize.linprog(
            np.concatenate([np.zeros(k), [-1.0]]),
            A_ub=np.hstack([-np.eye(k), np.ones((k, 1))]),
            b_ub=np.zeros(k),
            A_eq=np.hstack([As, np.zeros((As.shape[0], 1))]),
            b_eq=bs,
            bounds=[(0.0, None)] * k + [(0.0, 1.0)],
            method="highs",
        )
        if center.status == 0 and center.x[-1] > 0.0:
            x0 = (1.0 - eps) * x0 + eps * center.x[:k]
        else:
            logger.debug("No strictly positive feasible amounts found.")
            x0 = x0 + eps
        return OptimumState(x=x0 * scales)

    def sensitivity(self) -> EquilibriumSensitivity:
        """Derivatives of the equilibrium amounts of the last successful :meth:`solve`.

        Raises:
            RuntimeError: If the last computation did not converge.

        """
        sol = self._solution
        if sol is None:
            raise RuntimeError("No converged equilibrium computation available.")

        ie = self.partition.indices_equilibrium_species
        Ee = self.partition.num_equilibrium_elements
        glob = ie[sol.active]
        nx = sol.active.size
        m = sol.rows.size

        RT = R_IDEAL_MOL * sol.T
        mu = self.system.properties(sol.T, sol.P, sol.n).chemical_potentials
        # d(mu / RT) / dT with the T dependency of RT
        dgdT = mu.ddT[glob] / RT - mu.val[glob] / (RT * sol.T)
        dgdP = mu.ddP[glob] / RT

        dg_dp = np.zeros((nx, 2 + m))
        dg_dp[:, 0] = dgdT
        dg_dp[:, 1] = dgdP
        dh_dp = np.zeros((m, 2 + m))
        dh_dp[:, 2:] = -np.eye(m)

        dx, _, _ = interior_point.sensitivity(sol.optimum, dg_dp, dh_dp)

        Ne = ie.size
        sens = EquilibriumSensitivity(np.zeros(Ne), np.zeros(Ne), np.zeros((Ne, Ee)))
        sens.dndT[sol.active] = dx[:, 0]
        sens.dndP[sol.active] = dx[:, 1]
        sens.dndb[np.ix_(sol.active, sol.rows)] = dx[:, 2:]
        return sens

    # --- inverse problems -----------------------------------------------------------

    @time_logger(sections=["equilibrium"])
    def solve_inverse(
        self,
        state: ChemicalState,
        problem: EquilibriumInverseProblem,
        x0: Optional[np.ndarray] = None,
    ) -> EquilibriumResult:
        """Computes the titrant amounts and the equilibrium satisfying the constraints
        of an inverse problem.

        Newton's method with an Armijo line search is applied to the residual of the
        constraints as function of the titrant amounts (least squares steps if the
        numbers of constraints and titrants differ). The Jacobian is assembled with the
        sensitivities of the equilibrium amounts with respect to the element amounts.
        Steps for which the equilibrium computation fails, e.g. due to negative element
        amounts, are shortened. The state is only updated if the constraints are met.

        Parameters:
            state: The state to equilibrate, also the initial guess of the equilibrium.
            problem: The inverse problem.
            x0: ``default=None``

                Initial titrant amounts. Defaults to
                :attr:`EquilibriumOptions.titrant_initial_amount`.

        """
        start = time.perf_counter()
        opts = self.options
        if problem.partition is not self.partition:
            self.set_partition(problem.partition)

        ie = self.partition.indices_equilibrium_species
        ee = self.partition.indices_equilibrium_elements
        N = self.system.num_species
        Wt = problem.formula_matrix_titrants()[ee]

        if x0 is None:
            x = np.full(problem.num_titrants(), opts.titrant_initial_amount)
        else:
            x = np.asarray(x0, dtype=float).copy()

        total_iterations = 0

        def evaluate(x: np.ndarray, base: ChemicalState):
            nonlocal total_iterations
            trial = base.copy()
            b = problem.element_amounts(x)[ee]
            eq = self.solve(trial, problem.T, problem.P, b)
            total_iterations += eq.iterations
            if not eq.converged:
                return None
            res = problem.residual_equilibrium_constraints(x, trial)
            dndx = np.zeros((N, x.size))
            dndx[ie] = self.sensitivity().dndb @ Wt
            J = res.ddx + res.ddn @ dndx
            return res.val, J, trial, eq

        result = EquilibriumResult(status=OptimumStatus.max_iterations)
        current = evaluate(x, state)
        if current is None:
            result.status = OptimumStatus.infeasible
            result.time = time.perf_counter() - start
            logger.warning("Inverse equilibrium: initial equilibrium failed.")
            return result

        iterations = 0
        while True:
            F, J, trial, eq = current
            error = float(np.max(np.abs(F), initial=0.0))
            logger.debug(f"Inverse iteration {iterations}: residual {error:.3e}")

            if error <= opts.inverse_tolerance:
                result.status = OptimumStatus.converged
                break
            if iterations >= opts.inverse_max_iterations:
                result.status = OptimumStatus.max_iterations
                break

            iterations += 1
            dx = np.linalg.lstsq(J, -F, rcond=None)[0]
            pot = 0.5 * float(F @ F)

            alpha = 1.0
            accepted = None
            for _ in range(opts.max_iter_armijo):
                x_t = x + alpha * dx
                candidate = evaluate(x_t, trial)
                if candidate is not None:
                    F_t = candidate[0]
                    if 0.5 * float(F_t @ F_t) <= (
                        1.0 - 2.0 * opts.armijo_kappa * alpha
                    ) * pot:
                        accepted = candidate
                        break
                alpha *= opts.armijo_rho

            if accepted is None:
                logger.debug(f"Line search failed in inverse iteration {iterations}.")
                result.status = OptimumStatus.infeasible
                break
            x, current = x_t, accepted

        F, J, trial, eq = current
        if result.converged:
            state.T, state.P = trial.T, trial.P
            state.set_species_amounts(trial.n)
            state.y = trial.y.copy()
            state.z = trial.z.copy()

        result.optimum = eq.optimum
        result.iterations = total_iterations
        result.inverse_iterations = iterations
        result.inverse_residual = float(np.max(np.abs(F), initial=0.0))
        result.titrant_amounts = x.copy()
        result.time = time.perf_counter() - start

        if result.converged:
            logger.debug(f"Inverse equilibrium {result}.")
        else:
            logger.warning(f"Inverse equilibrium {result}.")
        return result


def equilibrate(
    state: ChemicalState,
    problem: Optional[EquilibriumProblem | EquilibriumInverseProblem] = None,
    options: Optional[EquilibriumOptions] = None,
) -> EquilibriumResult:
    """Equilibrates a state.

    Parameters:
        state: The state, updated in place.
        problem: ``default=None``

            A direct or inverse problem. Without, the state is equilibrated at its
            temperature, pressure and element amounts.
        options: ``default=None``

            Solver options.

    """
    if isinstance(problem, EquilibriumInverseProblem):
        solver = EquilibriumSolver(state.system, problem.partition, options)
        return solver.solve_inverse(state, problem)
    if isinstance(problem, EquilibriumProblem):
        solver = EquilibriumSolver(state.system, problem.partition, options)
        return solver.solve(state, problem.T, problem.P, problem.element_amounts())
    return EquilibriumSolver(state.system, options=options).solve(state)
