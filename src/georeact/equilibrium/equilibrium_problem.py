"""Definition of a direct equilibrium problem: temperature, pressure and the amounts of
the elements in the equilibrium partition.

Element amounts are usually assembled from recipes of compounds and species, e.g.

.. code-block:: python

    problem = EquilibriumProblem(system)
    problem.add("H2O", 55.508)
    problem.add("CO2", 0.1)
    problem.add("NaCl", 0.01)

"""

from __future__ import annotations

from typing import Mapping, Optional

import numpy as np

from ..chemistry.elements import parse_formula
from ..chemistry.partition import Partition
from ..chemistry.system import ChemicalSystem
from ..chemistry.utils import ChemicalModellingError, SpeciesNotFoundError

__all__ = ["EquilibriumProblem", "formula_vector"]


def formula_vector(
    system: ChemicalSystem, compound: str | Mapping[str, float]
) -> np.ndarray:
    """Amounts of the elements of ``system`` in one mole of a compound.

    Parameters:
        system: The chemical system defining the element order.
        compound: A species name of the system (including the charge of the
            species), a formula string like ``"NaOH"``, or a mapping from element
            symbols to coefficients.

    Raises:
        SpeciesNotFoundError: If the compound is neither a species of the system nor a
            formula composed of elements of the system.

    Returns:
        A vector of size ``system.num_elements``.

    """
    E = system.num_elements
    if isinstance(compound, str):
        i = system.index_species(compound)
        if i < system.num_species:
            return system.formula_matrix[:, i].copy()
        try:
            formula = parse_formula(compound)
        except ChemicalModellingError as err:
            raise SpeciesNotFoundError(
                f"'{compound}' is neither a species of the system nor a formula."
            ) from err
    else:
        formula = dict(compound)

    vec = np.zeros(E)
    for element, coeff in formula.items():
        j = system.index_element(element)
        if j == E:
            raise SpeciesNotFoundError(
                f"Element '{element}' of compound '{compound}' is not in the system."
            )
        vec[j] += float(coeff)
    return vec


class EquilibriumProblem:
    """Temperature, pressure and element amounts of an equilibrium computation.

    The element amounts are stored for all elements of the system.
    :meth:`element_amounts` returns those of the equilibrium elements of the
    partition, which are the input of
    :meth:`~georeact.equilibrium.equilibrium_solver.EquilibriumSolver.solve`.

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
        """Temperature in ``[K]``."""

        self.P: float = 1.0e5
        """Pressure in ``[Pa]``."""

        self._b: np.ndarray = np.zeros(system.num_elements)

    def set_temperature(self, T: float) -> EquilibriumProblem:
        if T <= 0.0:
            raise ValueError(f"Temperature must be positive, got {T}.")
        self.T = float(T)
        return self

    def set_pressure(self, P: float) -> EquilibriumProblem:
        if P <= 0.0:
            raise ValueError(f"Pressure must be positive, got {P}.")
        self.P = float(P)
        return self

    def set_partition(self, partition: Partition) -> EquilibriumProblem:
        self.partition = partition
        return self

    def set_element_amounts(self, b: np.ndarray) -> EquilibriumProblem:
        """Sets the amounts of all elements of the system, including the charge row if
        present."""
        b = np.asarray(b, dtype=float)
        if b.shape != (self.system.num_elements,):
            raise ValueError(
                f"Expecting {self.system.num_elements} element amounts, got {b.shape}."
            )
        self._b = b.copy()
        return self

    def add(
        self, compound: str | Mapping[str, float], amount: float
    ) -> EquilibriumProblem:
        """Adds ``amount`` moles of a compound or species (:func:`formula_vector`)."""
        self._b += float(amount) * formula_vector(self.system, compound)
        return self

    def all_element_amounts(self) -> np.ndarray:
        """Amounts of all elements of the system."""
        return self._b.copy()

    def element_amounts(self) -> np.ndarray:
        """Amounts of the equilibrium elements of the partition."""
        return self._b[self.partition.indices_equilibrium_elements].copy()

    def __repr__(self) -> str:
        amounts = ", ".join(
            f"{e}: {v:g}" for e, v in zip(self.system.element_names, self._b)
        )
        return f"EquilibriumProblem(T={self.T:g}, P={self.P:g}, b={{{amounts}}})"
