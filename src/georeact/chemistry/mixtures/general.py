"""Base class of mixtures of species in a phase."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from ..species import Species
from ..states import ChemicalVector
from ..utils import ChemicalModellingError, index_of

__all__ = ["GeneralMixture", "MixtureState", "molar_fractions"]


@dataclass(eq=False)
class MixtureState:
    """Thermodynamic state of a mixture: temperature, pressure and molar fractions.

    Derivatives in :attr:`x` are with respect to the amounts of the species in the
    mixture.

    """

    T: float = 0.0
    """Temperature ``[K]``."""

    P: float = 0.0
    """Pressure ``[Pa]``."""

    x: ChemicalVector = field(default_factory=ChemicalVector)
    """Molar fractions of the species."""


def molar_fractions(n: np.ndarray) -> ChemicalVector:
    """Molar fractions ``x_i = n_i / sum_j n_j`` and their derivatives.

    A mixture with a single species has ``x = 1`` independently of its amount. If the
    total amount is zero, the fractions are zero.

    """
    n = np.asarray(n, dtype=float)
    k = n.size
    if k == 1:
        return ChemicalVector(np.ones(1), np.zeros(1), np.zeros(1), np.zeros((1, 1)))
    nt = n.sum()
    if nt == 0.0:
        return ChemicalVector.zeros(k, k)
    x = n / nt
    # d x_i / d n_j = (delta_ij - x_i) / nt
    ddn = (np.eye(k) - np.outer(x, np.ones(k))) / nt
    return ChemicalVector(x, np.zeros(k), np.zeros(k), ddn)


class GeneralMixture:
    """A mixture of species.

    Parameters:
        species: The species of the mixture. Names must be unique.

    Raises:
        ChemicalModellingError: If the mixture is empty or names are not unique.

    """

    def __init__(self, species: Sequence[Species]) -> None:
        if len(species) == 0:
            raise ChemicalModellingError("A mixture requires at least one species.")
        names = [s.name for s in species]
        if len(set(names)) != len(names):
            raise ChemicalModellingError(f"Species names are not unique: {names}")

        self._species: tuple[Species, ...] = tuple(species)
        self._names: list[str] = names
        self._charges: np.ndarray = np.array([s.charge for s in species], dtype=float)

    @property
    def species(self) -> tuple[Species, ...]:
        return self._species

    @property
    def num_species(self) -> int:
        return len(self._species)

    @property
    def names(self) -> list[str]:
        """Names of the species in the mixture."""
        return list(self._names)

    @property
    def charges(self) -> np.ndarray:
        """Electric charges of the species in the mixture."""
        return self._charges.copy()

    def index_species(self, name: str) -> int:
        """Index of a species in the mixture, or :attr:`num_species` if absent."""
        return index_of(self._names, name)

    def molar_fractions(self, n: np.ndarray) -> ChemicalVector:
        """Molar fractions of the species, given their amounts ``n``."""
        self._check_amounts(n)
        return molar_fractions(n)

    def state(self, T: float, P: float, n: np.ndarray) -> MixtureState:
        """Returns the state of the mixture at temperature ``T``, pressure ``P`` and
        amounts ``n``."""
        return MixtureState(T=T, P=P, x=self.molar_fractions(n))

    def _check_amounts(self, n: np.ndarray) -> None:
        if np.shape(n) != (self.num_species,):
            raise ValueError(
                f"Expecting {self.num_species} species amounts, got {np.shape(n)}."
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(self._names)})"
