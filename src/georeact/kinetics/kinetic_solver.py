r"""Time integration of kinetically controlled reactions, with the remaining species in
instantaneous equilibrium.

The unknowns are the amounts of the equilibrium elements ``b_e`` and the amounts of
the kinetic species ``n_k``. With the stoichiometric matrix :math:`\nu` of the kinetic
reactions and their rates ``r``,

.. math::

    \frac{d b_e}{d t} = W_e \nu_e^T r, \qquad \frac{d n_k}{d t} = \nu_k^T r,

where :math:`W_e` is the formula matrix of the equilibrium partition and
:math:`\nu_e, \nu_k` the columns of the equilibrium and kinetic species. The amounts
of the equilibrium species are obtained by an equilibrium computation for ``b_e`` at
every evaluation of the right hand side. Inert species keep their amounts.

The system is integrated with :func:`scipy.integrate.solve_ivp` (stiff methods by
default), with a Jacobian assembled from the rate derivatives and the equilibrium
sensitivities. The dependency of the equilibrium amounts on the kinetic species (e.g.
kinetic solutes in an equilibrium phase) is neglected in the Jacobian.

"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import scipy.integrate

from ..chemistry.partition import Partition
from ..chemistry.reactions.reaction_system import ReactionSystem
from ..chemistry.states import ChemicalState, ChemicalVector
from ..equilibrium.equilibrium_solver import EquilibriumOptions, EquilibriumSolver
from ..optimization.optimum_state import OptimumStatus
from ..utils.logging import time_logger

__all__ = ["KineticOptions", "KineticResult", "KineticSolver"]

logger = logging.getLogger(__name__)


class _EquilibriumFailure(Exception):
    """Raised inside the right hand side to abort the integration."""


@dataclass
class KineticOptions:
    """Parameters of the kinetic solver."""

    equilibrium: EquilibriumOptions = field(default_factory=EquilibriumOptions)
    """Options of the equilibrium computations of the equilibrium partition."""

    method: str = "BDF"
    """Integration method of :func:`scipy.integrate.solve_ivp`. Implicit methods use the
    Jacobian."""

    rtol: float = 1e-6

    atol: float = 1e-12
    """Absolute tolerance in ``[mol]``."""

    max_step: float = np.inf
    """Largest time step in ``[s]``."""


@dataclass
class KineticResult:
    """Result of a kinetic time step. Failure is reported by :attr:`status`."""

    status: OptimumStatus = OptimumStatus.max_iterations

    t: float = 0.0
    """Time reached in ``[s]``."""

    num_evaluations: int = 0
    """Evaluations of the right hand side (each including an equilibrium computation
    if the partition has equilibrium species)."""

    message: str = ""

    time: float = 0.0
    """Wall-clock time in seconds."""

    @property
    def converged(self) -> bool:
        return self.status == OptimumStatus.converged


class KineticSolver:
    """Solver advancing chemical states in time.

    Parameters:
        reactions: The kinetic reactions, all having rate laws.
        partition: ``default=None``

            Partition of the species. By default, all species are in equilibrium,
            hence the reactions only change the element amounts.
        options: ``default=None``

            Solver options. Defaults to :class:`KineticOptions`.

    """

    def __init__(
        self,
        reactions: ReactionSystem,
        partition: Optional[Partition] = None,
        options: Optional[KineticOptions] = None,
    ) -> None:
        self.reactions: ReactionSystem = reactions
        self.system = reactions.system
        self.options: KineticOptions = KineticOptions() if options is None else options
        self.set_partition(Partition(self.system) if partition is None else partition)

    def set_partition(self, partition: Partition) -> None:
        self.partition: Partition = partition

        ie = partition.indices_equilibrium_species
        ik = partition.indices_kinetic_species
        ee = partition.indices_equilibrium_elements
        nu = self.reactions.stoichiometric_matrix
        We = self.system.formula_matrix[np.ix_(ee, ie)]
        self._S: np.ndarray = np.vstack([We @ nu[:, ie].T, nu[:, ik].T])
        """Maps the reaction rates to the rates of ``(b_e, n_k)``."""

    def set_options(self, options: KineticOptions) -> None:
        self.options = options

    def rates(self, state: ChemicalState) -> ChemicalVector:
        """Rates of the reactions at a state in ``[mol / s]``."""
        a = state.properties().activities
        return self.reactions.rates(state.T, state.P, state.n, a)

    @time_logger(sections=["kinetics"])
    def solve(self, state: ChemicalState, t: float, dt: float) -> KineticResult:
        """Advances the state from time ``t`` to ``t + dt``.

        The state is updated in place if the integration succeeds.

        """
        start = time.perf_counter()
        ie = self.partition.indices_equilibrium_species
        ik = self.partition.indices_kinetic_species
        ee = self.partition.indices_equilibrium_elements
        Ee = ee.size
        N = self.system.num_species
        T, P = state.T, state.P

        work = state.copy()
        solver = EquilibriumSolver(
            self.system, self.partition, self.options.equilibrium
        )
        cache: dict[bytes, tuple[np.ndarray, np.ndarray]] = {}
        result = KineticResult(t=t)

        def evaluate(u: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
            key = u.tobytes()
            if key in cache:
                return cache[key]
            result.num_evaluations += 1
            n = work.n.copy()
            n[ik] = u[Ee:]
            work.set_species_amounts(n)
            dn_du = np.zeros((N, u.size))
            dn_du[ik, Ee:] = np.eye(ik.size)
            if ie.size > 0:
                eq = solver.solve(work, T, P, u[:Ee])
                if not eq.converged:
                    raise _EquilibriumFailure(f"equilibrium {eq.status.name}")
                dn_du[ie, :Ee] = solver.sensitivity().dndb
            r = self.rates(work)
            values = (self._S @ r.val, self._S @ r.ddn @ dn_du)
            cache.clear()
            cache[key] = values
            return values

        u0 = np.concatenate(
            [self.system.formula_matrix[np.ix_(ee, ie)] @ state.n[ie], state.n[ik]]
        )

        try:
            sol = scipy.integrate.solve_ivp(
                lambda _, u: evaluate(u)[0],
                (t, t + dt),
                u0,
                method=self.options.method,
                jac=lambda _, u: evaluate(u)[1],
                rtol=self.options.rtol,
                atol=self.options.atol,
                max_step=self.options.max_step,
            )
        except _EquilibriumFailure as err:
            result.status = OptimumStatus.infeasible
            result.message = str(err)
            result.time = time.perf_counter() - start
            logger.warning(f"Kinetic step from t={t:g} failed: {err}.")
            return result

        result.message = sol.message
        result.t = float(sol.t[-1])
        if not sol.success:
            result.status = OptimumStatus.infeasible
            result.time = time.perf_counter() - start
            logger.warning(f"Kinetic step from t={t:g} failed: {sol.message}")
            return result

        u = sol.y[:, -1]
        try:
            evaluate(np.ascontiguousarray(u))
        except _EquilibriumFailure as err:
            result.status = OptimumStatus.infeasible
            result.message = str(err)
            result.time = time.perf_counter() - start
            logger.warning(f"Final equilibrium at t={result.t:g} failed: {err}.")
            return result

        state.set_species_amounts(work.n)
        state.y = work.y.copy()
        state.z = work.z.copy()
        result.status = OptimumStatus.converged
        result.time = time.perf_counter() - start
        logger.debug(
            f"Kinetic step [{t:g}, {t + dt:g}] with {result.num_evaluations}"
            + f" evaluations in {result.time:.3e} s."
        )
        return result
