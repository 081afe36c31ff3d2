"""Chemical computations over the points of a spatial field.

:class:`ChemicalSolver` holds one chemical state per point. Equilibrium and kinetic
computations are independent per point: they share only the read-only chemical
system and can be distributed with any :class:`concurrent.futures.Executor`.

Properties coupling chemistry to transport (porosity, saturations and densities of
fluid phases) are returned as :class:`ChemicalField` with derivatives with respect to
temperature, pressure, the amounts of the equilibrium elements and the amounts of the
kinetic species. Derivatives of the equilibrium species amounts are taken from the
sensitivities of the equilibrium solver. The response of the equilibrium species to
the amounts of kinetic species is neglected.

"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np

from ..chemistry.partition import Partition
from ..chemistry.properties import ChemicalProperties
from ..chemistry.reactions.reaction_system import ReactionSystem
from ..chemistry.states import ChemicalScalar, ChemicalState
from ..chemistry.system import ChemicalSystem
from ..equilibrium.equilibrium_solver import (
    EquilibriumOptions,
    EquilibriumResult,
    EquilibriumSensitivity,
    EquilibriumSolver,
)
from ..kinetics.kinetic_solver import KineticOptions, KineticResult, KineticSolver
from ..utils.logging import time_logger

__all__ = ["ChemicalField", "ChemicalSolver"]

logger = logging.getLogger(__name__)


@dataclass
class ChemicalField:
    """Values of a scalar field and its derivatives, one row per point."""

    val: np.ndarray
    """Values, ``shape=(size,)``."""

    ddT: np.ndarray
    """Derivatives with respect to temperature, ``shape=(size,)``."""

    ddP: np.ndarray
    """Derivatives with respect to pressure, ``shape=(size,)``."""

    ddbe: np.ndarray
    """Derivatives with respect to the amounts of the equilibrium elements,
    ``shape=(size, num_equilibrium_elements)``."""

    ddnk: np.ndarray
    """Derivatives with respect to the amounts of the kinetic species,
    ``shape=(size, num_kinetic_species)``."""

    @classmethod
    def zeros(cls, size: int, num_elements: int, num_kinetic: int) -> ChemicalField:
        return cls(
            np.zeros(size),
            np.zeros(size),
            np.zeros(size),
            np.zeros((size, num_elements)),
            np.zeros((size, num_kinetic)),
        )


class ChemicalSolver:
    """A collection of chemical states, one per point of a field.

    Parameters:
        system: The chemical system, or a reaction system if the states are to be
            reacted with :meth:`react`.
        size: Number of points.
        partition: ``default=None``

            Partition of the species. All species are in equilibrium by default.
        options: ``default=None``

            Options of the equilibrium computations.
        kinetic_options: ``default=None``

            Options of the kinetic computations.

    """

    def __init__(
        self,
        system: ChemicalSystem | ReactionSystem,
        size: int,
        partition: Optional[Partition] = None,
        options: Optional[EquilibriumOptions] = None,
        kinetic_options: Optional[KineticOptions] = None,
    ) -> None:
        if isinstance(system, ReactionSystem):
            self.reactions: Optional[ReactionSystem] = system
            system = system.system
        else:
            self.reactions = None
        self.system: ChemicalSystem = system
        self.options: EquilibriumOptions = (
            EquilibriumOptions() if options is None else options
        )
        self.kinetic_options: KineticOptions = (
            KineticOptions(equilibrium=self.options)
            if kinetic_options is None
            else kinetic_options
        )

        self._size: int = int(size)
        self._states: list[ChemicalState] = [
            ChemicalState(system) for _ in range(self._size)
        ]
        self._reference_volumes: np.ndarray = np.zeros(self._size)
        self._sensitivities: list[Optional[EquilibriumSensitivity]] = [
            None
        ] * self._size
        self.set_partition(Partition(system) if partition is None else partition)

        fluid = [k for k, p in enumerate(system.phases) if p.state.is_fluid]
        self._fluid_phases: np.ndarray = np.array(fluid, dtype=int)
        self._solid_phases: np.ndarray = np.setdiff1d(
            np.arange(system.num_phases), self._fluid_phases
        )

    @property
    def size(self) -> int:
        return self._size

    def set_partition(self, partition: Partition) -> None:
        self.partition: Partition = partition
        self._sensitivities = [None] * self._size

    def set_state(
        self, state: ChemicalState, indices: Optional[Sequence[int]] = None
    ) -> None:
        """Sets a copy of ``state`` at all points, or at the points with given indices.

        The total volume of the state becomes the reference volume of the porosity at
        these points.

        """
        indices = range(self._size) if indices is None else indices
        volume = float(state.properties().phase_volumes.val.sum())
        for i in indices:
            self._states[i] = state.copy()
            self._reference_volumes[i] = volume
            self._sensitivities[i] = None

    def set_reference_volumes(self, volumes: np.ndarray) -> None:
        """Sets the reference total volumes ``[m^3]`` of the porosity per point."""
        volumes = np.asarray(volumes, dtype=float)
        if volumes.shape != (self._size,):
            raise ValueError(
                f"Expecting {self._size} reference volumes, got {volumes.shape}."
            )
        self._reference_volumes = volumes.copy()

    def state(self, i: int) -> ChemicalState:
        """The state at point ``i`` (not a copy)."""
        return self._states[i]

    # --- computations ---------------------------------------------------------------

    def equilibrate_point(
        self, i: int, T: float, P: float, be: np.ndarray
    ) -> EquilibriumResult:
        """Equilibrates the state at point ``i``, starting from its previous state.

        The state of the point is only replaced if the computation converges.

        """
        solver = EquilibriumSolver(self.system, self.partition, self.options)
        state = self._states[i].copy()
        result = solver.solve(state, T, P, be)
        if result.converged:
            self._states[i] = state
            self._sensitivities[i] = solver.sensitivity()
        else:
            logger.warning(f"Equilibrium at point {i} failed: {result}.")
        return result

    @time_logger(sections=["field"])
    def equilibrate(
        self,
        T: np.ndarray,
        P: np.ndarray,
        be: np.ndarray,
        executor: Optional[Executor] = None,
    ) -> list[EquilibriumResult]:
        """Equilibrates the states at all points.

        Parameters:
            T: ``shape=(size,)``

                Temperatures in ``[K]``.
            P: ``shape=(size,)``

                Pressures in ``[Pa]``.
            be: ``shape=(size * num_equilibrium_elements,)``

                Amounts of the equilibrium elements, point by point.
            executor: ``default=None``

                Executor distributing the points. Sequential if not given.

        Returns:
            The result per point.

        """
        Ee = self.partition.num_equilibrium_elements
        T = np.broadcast_to(np.asarray(T, dtype=float), (self._size,))
        P = np.broadcast_to(np.asarray(P, dtype=float), (self._size,))
        be = np.asarray(be, dtype=float)
        if be.size != self._size * Ee:
            raise ValueError(
                f"Expecting {self._size} x {Ee} element amounts, got {be.size}."
            )
        be = be.reshape(self._size, Ee)

        points = range(self._size)
        if executor is None:
            results = list(map(self.equilibrate_point, points, T, P, be))
        else:
            results = list(executor.map(self.equilibrate_point, points, T, P, be))

        failed = sum(not r.converged for r in results)
        if failed:
            logger.warning(f"Equilibrium failed at {failed} of {self._size} points.")
        return results

    def react_point(self, i: int, t: float, dt: float) -> KineticResult:
        """Advances the state at point ``i`` from ``t`` to ``t + dt``."""
        if self.reactions is None:
            raise ValueError("The solver was created without reactions.")
        solver = KineticSolver(self.reactions, self.partition, self.kinetic_options)
        state = self._states[i].copy()
        result = solver.solve(state, t, dt)
        if result.converged:
            self._states[i] = state
            self._sensitivities[i] = None
        else:
            logger.warning(f"Kinetic step at point {i} failed: {result.message}")
        return result

    @time_logger(sections=["field"])
    def react(
        self, t: float, dt: float, executor: Optional[Executor] = None
    ) -> list[KineticResult]:
        """Advances the states at all points from ``t`` to ``t + dt``."""
        points = range(self._size)
        times = [t] * self._size
        steps = [dt] * self._size
        if executor is None:
            return list(map(self.react_point, points, times, steps))
        return list(executor.map(self.react_point, points, times, steps))

    # --- fields ---------------------------------------------------------------------

    def _sensitivity(self, i: int) -> EquilibriumSensitivity:
        """Sensitivity of the equilibrium at point ``i``.

        States set or advanced without an equilibrium computation of this solver are
        equilibrated again. The derivatives are only valid if this leaves the state
        unchanged.

        Raises:
            RuntimeError: If the state at point ``i`` is not in equilibrium.

        """
        sens = self._sensitivities[i]
        if sens is None:
            solver = EquilibriumSolver(self.system, self.partition, self.options)
            state = self._states[i].copy()
            result = solver.solve(state)
            ie = self.partition.indices_equilibrium_species
            n = self._states[i].n[ie]
            atol = 1e-12 * max(1.0, float(np.max(n, initial=0.0)))
            if not result.converged or not np.allclose(
                state.n[ie], n, rtol=1e-6, atol=atol
            ):
                raise RuntimeError(
                    f"The state at point {i} is not in equilibrium, no derivatives."
                )
            sens = solver.sensitivity()
            self._sensitivities[i] = sens
        return sens

    def _field(
        self,
        quantity: Callable[[int, ChemicalProperties], ChemicalScalar],
        with_diff: bool,
    ) -> ChemicalField:
        ie = self.partition.indices_equilibrium_species
        ik = self.partition.indices_kinetic_species
        Ee = self.partition.num_equilibrium_elements
        field = ChemicalField.zeros(self._size, Ee, ik.size)
        for i, state in enumerate(self._states):
            q = quantity(i, state.properties())
            field.val[i] = q.val
            if not with_diff:
                continue
            sens = self._sensitivity(i) if ie.size > 0 else None
            field.ddT[i] = q.ddT
            field.ddP[i] = q.ddP
            field.ddnk[i] = q.ddn[ik]
            if sens is not None:
                field.ddT[i] += q.ddn[ie] @ sens.dndT
                field.ddP[i] += q.ddn[ie] @ sens.dndP
                field.ddbe[i] = q.ddn[ie] @ sens.dndb
        return field

    def _porosity(self, i: int, props: ChemicalProperties) -> ChemicalScalar:
        V = props.phase_volumes
        solid = ChemicalScalar.zero(self.system.num_species)
        for k in self._solid_phases:
            solid = solid + V[k]
        V_ref = self._reference_volumes[i]
        if V_ref <= 0.0:
            raise ValueError(f"No reference volume at point {i}.")
        return 1.0 - solid / V_ref

    def _fluid_phase(self, ifluid: int) -> int:
        if not 0 <= ifluid < self._fluid_phases.size:
            raise IndexError(
                f"Fluid phase index {ifluid} out of range"
                + f" [0, {self._fluid_phases.size})."
            )
        return int(self._fluid_phases[ifluid])

    def _saturation(self, k: int, props: ChemicalProperties) -> ChemicalScalar:
        V = props.phase_volumes
        fluid = ChemicalScalar.zero(self.system.num_species)
        for j in self._fluid_phases:
            fluid = fluid + V[j]
        return V[k] / fluid

    def porosity(self) -> ChemicalField:
        """Porosity ``1 - V_solid / V_ref`` per point, without derivatives.

        Raises:
            ValueError: If a point has no reference volume, see :meth:`set_state`.

        """
        return self._field(self._porosity, False)

    def porosity_with_diff(self) -> ChemicalField:
        """Porosity with derivatives, see :meth:`porosity`.

        Raises:
            RuntimeError: If the state of a point is not in equilibrium.

        """
        return self._field(self._porosity, True)

    def saturation(self, ifluid: int) -> ChemicalField:
        """Saturation ``V_i / V_fluid`` of the ``ifluid``-th fluid phase of the system,
        without derivatives."""
        k = self._fluid_phase(ifluid)
        return self._field(lambda _, props: self._saturation(k, props), False)

    def saturation_with_diff(self, ifluid: int) -> ChemicalField:
        k = self._fluid_phase(ifluid)
        return self._field(lambda _, props: self._saturation(k, props), True)

    def density(self, ifluid: int) -> ChemicalField:
        """Mass density ``[kg / m^3]`` of the ``ifluid``-th fluid phase of the system,
        without derivatives."""
        k = self._fluid_phase(ifluid)
        return self._field(lambda _, props: props.phase_densities[k], False)

    def density_with_diff(self, ifluid: int) -> ChemicalField:
        k = self._fluid_phase(ifluid)
        return self._field(lambda _, props: props.phase_densities[k], True)
