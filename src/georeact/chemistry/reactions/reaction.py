"""Chemical reactions among the species of a chemical system.

A reaction is given by an equation such as ``"Calcite = Ca+2 + CO3-2"`` or
``"CO2(g) + H2O(l) = H+ + HCO3-"``. Stoichiometric coefficients are positive for
products and negative for reactants. Coefficients other than one are written as
``"2*H2O(l)"``. Species are separated by a plus sign surrounded by white space, such
that charges like ``H+`` are part of the names.

"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from ...utils.georeact_types import ReactionRateFunction, ThermoFunction
from ..states import ChemicalScalar, ChemicalVector, ThermoScalar
from ..system import ChemicalSystem
from ..utils import ChemicalModellingError, index_of
from .reaction_utils import equilibrium_constant

__all__ = ["Reaction", "parse_reaction_equation"]

logger = logging.getLogger(__name__)

_COEFFICIENT = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)\s*\*\s*(\S+)\s*$")
_SEPARATOR = re.compile(r"\s+\+\s+")


def parse_reaction_equation(equation: str) -> dict[str, float]:
    """Parses a reaction equation into a mapping from species names to stoichiometric
    coefficients (negative for reactants).

    Raises:
        ChemicalModellingError: If the equation does not contain exactly one ``=`` or
            a species appears on both sides.

    """
    sides = equation.split("=")
    if len(sides) != 2:
        raise ChemicalModellingError(
            f"Cannot parse reaction '{equation}', expecting 'reactants = products'."
        )

    result: dict[str, float] = {}
    for side, sign in zip(sides, (-1.0, 1.0)):
        for term in _SEPARATOR.split(side.strip()):
            if not term:
                raise ChemicalModellingError(f"Empty species in reaction '{equation}'.")
            match = _COEFFICIENT.match(term)
            if match:
                coeff, name = float(match.group(1)), match.group(2)
            else:
                coeff, name = 1.0, term.strip()
            if name in result:
                raise ChemicalModellingError(
                    f"Species '{name}' appears twice in reaction '{equation}'."
                )
            result[name] = sign * coeff
    return result


@dataclass(frozen=True, eq=False)
class Reaction:
    """A reaction among species of a chemical system.

    Use :meth:`from_equation` to create a reaction with the equilibrium constant
    computed from the standard chemical potentials of the species.

    """

    species_names: tuple[str, ...]
    """Names of the reacting species."""

    stoichiometries: np.ndarray
    """Stoichiometric coefficients of the reacting species, positive for products."""

    indices: np.ndarray
    """Indices of the reacting species in the chemical system."""

    equilibrium_constant_function: Optional[ThermoFunction] = None
    """Function ``K(T, P)``."""

    rate_function: Optional[ReactionRateFunction] = None
    """Function ``r(T, P, n, a)``, the rate of the reaction in ``[mol / s]``."""

    name: str = field(default="")

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "stoichiometries", np.array(self.stoichiometries, dtype=float)
        )
        object.__setattr__(self, "indices", np.array(self.indices, dtype=int))
        size = len(self.species_names)
        if not (size == self.stoichiometries.size == self.indices.size):
            raise ValueError("Inconsistent number of species and coefficients.")
        self.stoichiometries.setflags(write=False)
        self.indices.setflags(write=False)

    @classmethod
    def from_equation(
        cls,
        system: ChemicalSystem,
        equation: str | dict[str, float],
        rate: Optional[ReactionRateFunction] = None,
        name: str = "",
    ) -> Reaction:
        """Creates a reaction from an equation string or a mapping of species names to
        stoichiometric coefficients.

        A warning is logged if the reaction does not conserve elements and charge.

        Raises:
            SpeciesNotFoundError: If a species is not in the system.

        """
        if isinstance(equation, str):
            name = name or equation
            equation = parse_reaction_equation(equation)
        names = tuple(equation.keys())
        nu = np.array([float(equation[s]) for s in names])
        idx = np.array([system.index_species_or_raise(s) for s in names], dtype=int)

        balance = system.formula_matrix[:, idx] @ nu
        if not np.allclose(balance, 0.0):
            unbalanced = [
                e for e, b in zip(system.element_names, balance) if not np.isclose(b, 0)
            ]
            logger.warning(f"Reaction '{name}' is not balanced in {unbalanced}.")

        reaction = cls(names, nu, idx, None, rate, name)
        # The constant depends on the reaction itself, hence it is attached afterwards.
        object.__setattr__(
            reaction,
            "equilibrium_constant_function",
            equilibrium_constant(system, reaction),
        )
        return reaction

    @property
    def num_species(self) -> int:
        return len(self.species_names)

    def index_species(self, name: str) -> int:
        """Local index of a species in the reaction, or :attr:`num_species`."""
        return index_of(self.species_names, name)

    def contains_species(self, name: str) -> bool:
        return self.index_species(name) < self.num_species

    def stoichiometry(self, name: str) -> float:
        """Stoichiometric coefficient of a species, zero if it does not react."""
        i = self.index_species(name)
        return float(self.stoichiometries[i]) if i < self.num_species else 0.0

    def equilibrium_constant(self, T: float, P: float) -> ThermoScalar:
        if self.equilibrium_constant_function is None:
            raise ChemicalModellingError(
                f"Reaction '{self.name}' has no equilibrium constant."
            )
        return self.equilibrium_constant_function(T, P)

    def rate(
        self, T: float, P: float, n: np.ndarray, a: ChemicalVector
    ) -> ChemicalScalar:
        """Rate of the reaction in ``[mol / s]``, with derivatives.

        Raises:
            ChemicalModellingError: If the reaction has no rate law.

        """
        if self.rate_function is None:
            raise ChemicalModellingError(f"Reaction '{self.name}' has no rate law.")
        return self.rate_function(T, P, n, a)

    def with_rate(self, rate: ReactionRateFunction) -> Reaction:
        """Returns a copy of the reaction with a rate law."""
        return Reaction(
            self.species_names,
            self.stoichiometries,
            self.indices,
            self.equilibrium_constant_function,
            rate,
            self.name,
        )

    def __repr__(self) -> str:
        return f"Reaction({self.name!r})"
