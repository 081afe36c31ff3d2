r"""Inverse equilibrium problems: find the amounts of titrants such that the
equilibrium state satisfies given constraints, e.g. a fixed pH or a fixed amount of a
gas.

With the titrant amounts ``x``, the element amounts of the equilibrium problem are

.. math::

    b(x) = b_0 + W_t x,

where :math:`W_t` is the formula matrix of the titrants
(:meth:`EquilibriumInverseProblem.formula_matrix_titrants`). The constraints are
residual equations :math:`r(x, n) = 0` in the titrant amounts and the equilibrium
species amounts ``n(b(x))``, which are solved by
:meth:`~georeact.equilibrium.equilibrium_solver.EquilibriumSolver.solve_inverse`.

Two titrants can be declared mutually exclusive (e.g. an acid and a base, of which
only one is to be added). This is expressed by the complementarity condition
``x_i >= 0, x_j >= 0, x_i x_j = 0``, which enters the residual as the
Fischer-Burmeister function

.. math::

    \phi(x_i, x_j) = x_i + x_j - \sqrt{x_i^2 + x_j^2}.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import numpy as np

from ..chemistry.partition import Partition
from ..chemistry.states import ChemicalState
from ..chemistry.system import ChemicalSystem, Phase
from ..chemistry.utils import SpeciesNotFoundError, index_of
from .equilibrium_problem import formula_vector

__all__ = ["ResidualEquilibriumConstraints", "EquilibriumInverseProblem"]

logger = logging.getLogger(__name__)


@dataclass
class ResidualEquilibriumConstraints:
    """Residuals of the constraints of an inverse problem and their derivatives."""

    val: np.ndarray
    """Residuals, one per constraint, in the order the constraints were added."""

    ddx: np.ndarray
    """Derivatives with respect to the titrant amounts, ``shape=(num_constraints,
    num_titrants)``."""

    ddn: np.ndarray
    """Derivatives with respect to all species amounts, ``shape=(num_constraints,
    num_species)``."""


@dataclass(frozen=True)
class _Constraint:
    kind: str
    """One of ``activity, amount, phase_amount, phase_volume, exclusive``."""

    index: int
    """Species or phase index, or the first titrant of an exclusive pair."""

    value: float = 0.0

    other: int = -1
    """The second titrant of an exclusive pair."""


class EquilibriumInverseProblem:
    """Constraints and titrants of an inverse equilibrium problem.

    Parameters:
        system: The chemical system.
        partition: ``default=None``

            Partition of the species. All species are in equilibrium by default.

    """

    def __init__(
        self, system: ChemicalSystem, partition: Optional[Partition] = None
    ) -> None:
        self.system: ChemicalSystem = system

        self.partition: Partition = (
            Partition(system) if partition is None else partition
        )

        self.T: float = 298.15
        """Temperature in ``[K]`` of the equilibrium computations."""

        self.P: float = 1.0e5
        """Pressure in ``[Pa]`` of the equilibrium computations."""

        self._constraints: list[_Constraint] = []
        self._titrant_names: list[str] = []
        self._titrant_formulas: list[np.ndarray] = []
        self._b0: np.ndarray = np.zeros(system.num_elements)

    # --- constraints ----------------------------------------------------------------

    def add_species_activity_constraint(
        self, species: str, value: float
    ) -> EquilibriumInverseProblem:
        """Requires the activity of a species to be ``value`` (``> 0``)."""
        if value <= 0.0:
            raise ValueError(f"Activity must be positive, got {value}.")
        i = self.system.index_species_or_raise(species)
        self._constraints.append(_Constraint("activity", i, float(value)))
        return self

    def add_species_amount_constraint(
        self, species: str, value: float
    ) -> EquilibriumInverseProblem:
        """Requires the amount of a species to be ``value`` in ``[mol]``."""
        i = self.system.index_species_or_raise(species)
        self._constraints.append(_Constraint("amount", i, float(value)))
        return self

    def add_phase_amount_constraint(
        self, phase: str, value: float
    ) -> EquilibriumInverseProblem:
        """Requires the total amount of the species of a phase to be ``value``."""
        k = self.system.index_phase_or_raise(phase)
        self._constraints.append(_Constraint("phase_amount", k, float(value)))
        return self

    def add_phase_volume_constraint(
        self, phase: str, value: float
    ) -> EquilibriumInverseProblem:
        """Requires the volume of a phase to be ``value`` in ``[m^3]``."""
        k = self.system.index_phase_or_raise(phase)
        self._constraints.append(_Constraint("phase_volume", k, float(value)))
        return self

    def add_ph_constraint(self, pH: float) -> EquilibriumInverseProblem:
        """Requires ``-log10 a(H+) = pH``."""
        return self.add_species_activity_constraint("H+", 10.0 ** (-pH))

    def set_initial_element_amounts(self, b0: np.ndarray) -> EquilibriumInverseProblem:
        """Sets the known element amounts ``b0`` (all elements of the system)."""
        b0 = np.asarray(b0, dtype=float)
        if b0.shape != (self.system.num_elements,):
            raise ValueError(
                f"Expecting {self.system.num_elements} element amounts, got {b0.shape}."
            )
        self._b0 = b0.copy()
        return self

    # --- titrants -------------------------------------------------------------------

    def add_titrant(
        self, name: str, formula: Optional[str | Mapping[str, float]] = None
    ) -> EquilibriumInverseProblem:
        """Adds a titrant, whose amount is an unknown of the problem.

        Parameters:
            name: Name of the titrant. Without ``formula``, it must be a species of the
                system or a compound formula like ``"HCl"``.
            formula: ``default=None``

                Formula string or mapping of element coefficients of the titrant.

        Raises:
            SpeciesNotFoundError: If the composition of the titrant cannot be resolved
                with the elements of the system.
            ValueError: If a titrant with the same name exists.

        """
        if name in self._titrant_names:
            raise ValueError(f"Titrant '{name}' was already added.")
        vec = formula_vector(self.system, name if formula is None else formula)
        if not np.any(vec != 0.0):
            raise ValueError(f"Titrant '{name}' contains no element of the system.")
        self._titrant_names.append(name)
        self._titrant_formulas.append(vec)
        logger.debug(f"Added titrant '{name}' with element amounts {vec}.")
        return self

    def add_titrants(self, phase: str | Phase) -> EquilibriumInverseProblem:
        """Adds every species of a phase as titrant."""
        if isinstance(phase, str):
            phase = self.system.phase(phase)
        for name in phase.species_names:
            self.add_titrant(name)
        return self

    def set_as_mutually_exclusive(
        self, titrant1: str, titrant2: str
    ) -> EquilibriumInverseProblem:
        """Declares that at most one of the two titrants is added, both amounts being
        non-negative."""
        i = self._index_titrant_or_raise(titrant1)
        j = self._index_titrant_or_raise(titrant2)
        if i == j:
            raise ValueError(f"A titrant cannot exclude itself: '{titrant1}'.")
        self._constraints.append(_Constraint("exclusive", i, 0.0, j))
        return self

    def _index_titrant_or_raise(self, name: str) -> int:
        i = index_of(self._titrant_names, name)
        if i == len(self._titrant_names):
            raise SpeciesNotFoundError(f"Titrant '{name}' not found.")
        return i

    # --- queries --------------------------------------------------------------------

    def empty(self) -> bool:
        return len(self._constraints) == 0

    def num_constraints(self) -> int:
        """Number of residual rows, including mutual exclusions."""
        return len(self._constraints)

    def num_titrants(self) -> int:
        return len(self._titrant_names)

    @property
    def titrant_names(self) -> list[str]:
        return list(self._titrant_names)

    def formula_matrix_titrants(self) -> np.ndarray:
        """Element amounts of the titrants, ``shape=(num_elements, num_titrants)``."""
        if not self._titrant_formulas:
            return np.zeros((self.system.num_elements, 0))
        return np.column_stack(self._titrant_formulas)

    def initial_element_amounts(self) -> np.ndarray:
        return self._b0.copy()

    def element_amounts(self, x: np.ndarray) -> np.ndarray:
        """Element amounts ``b0 + W_t x`` of all elements for titrant amounts ``x``."""
        return self._b0 + self.formula_matrix_titrants() @ np.asarray(x, dtype=float)

    # --- residual -------------------------------------------------------------------

    def residual_equilibrium_constraints(
        self, x: np.ndarray, state: ChemicalState
    ) -> ResidualEquilibriumConstraints:
        """Evaluates the constraint residuals at titrant amounts ``x`` and the state.

        Raises:
            ValueError: If ``x`` does not have one entry per titrant.

        """
        x = np.asarray(x, dtype=float)
        if x.shape != (self.num_titrants(),):
            raise ValueError(
                f"Expecting {self.num_titrants()} titrant amounts, got {x.shape}."
            )
        m = self.num_constraints()
        N = self.system.num_species
        res = ResidualEquilibriumConstraints(
            np.zeros(m), np.zeros((m, x.size)), np.zeros((m, N))
        )

        kinds = {c.kind for c in self._constraints}
        props = (
            state.properties() if kinds & {"activity", "phase_volume"} else None
        )

        for row, c in enumerate(self._constraints):
            if c.kind == "activity":
                ln_a = props.ln_activities
                res.val[row] = ln_a.val[c.index] - np.log(c.value)
                res.ddn[row] = ln_a.ddn[c.index]
            elif c.kind == "amount":
                res.val[row] = state.n[c.index] - c.value
                res.ddn[row, c.index] = 1.0
            elif c.kind == "phase_amount":
                s = self.system.phase_slices[c.index]
                res.val[row] = state.n[s].sum() - c.value
                res.ddn[row, s] = 1.0
            elif c.kind == "phase_volume":
                V = props.phase_volumes
                res.val[row] = V.val[c.index] - c.value
                res.ddn[row] = V.ddn[c.index]
            else:
                a, b = x[c.index], x[c.other]
                r = np.hypot(a, b)
                res.val[row] = a + b - r
                if r > 0.0:
                    res.ddx[row, c.index] = 1.0 - a / r
                    res.ddx[row, c.other] = 1.0 - b / r
                else:
                    # A generalized gradient at the kink.
                    res.ddx[row, c.index] = 1.0 - np.sqrt(0.5)
                    res.ddx[row, c.other] = 1.0 - np.sqrt(0.5)
        return res

    # --- copies ---------------------------------------------------------------------

    def copy(self) -> EquilibriumInverseProblem:
        """Deep copy of the problem, sharing the (immutable) system and partition."""
        other = EquilibriumInverseProblem(self.system, self.partition)
        other.T = self.T
        other.P = self.P
        other._constraints = list(self._constraints)
        other._titrant_names = list(self._titrant_names)
        other._titrant_formulas = [f.copy() for f in self._titrant_formulas]
        other._b0 = self._b0.copy()
        return other

    def __deepcopy__(self, memo) -> EquilibriumInverseProblem:
        return self.copy()

    def __repr__(self) -> str:
        return (
            f"EquilibriumInverseProblem({self.num_constraints()} constraints,"
            + f" titrants {self._titrant_names})"
        )
