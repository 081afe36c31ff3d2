"""Gaseous mixtures."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from ..states import ChemicalVector, ThermoScalar
from .general import GeneralMixture, MixtureState

__all__ = ["GaseousMixture", "GaseousMixtureState"]


@dataclass(eq=False)
class GaseousMixtureState(MixtureState):
    """State of a gaseous mixture, with the partial pressures of the species."""

    partial_pressures: ChemicalVector = field(default_factory=ChemicalVector)
    """Partial pressures ``x_i P`` in ``[Pa]``."""


class GaseousMixture(GeneralMixture):
    """A mixture of gaseous species."""

    def state(self, T: float, P: float, n: np.ndarray) -> GaseousMixtureState:
        x = self.molar_fractions(n)
        return GaseousMixtureState(
            T=T, P=P, x=x, partial_pressures=ThermoScalar.pressure(P) * x
        )
