"""Chemical species: name, formula, charge and standard thermodynamic model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from .elements import molar_mass, parse_formula
from .states import ThermoScalar
from .thermo_models import StandardThermoModel

__all__ = ["Species"]


@dataclass(frozen=True, eq=False)
class Species:
    """A chemical species.

    Species are immutable and shared between systems, phases and states.

    Example:

        .. code-block:: python

            Species("CO2(aq)", {"C": 1, "O": 2}, ConstantHeatCapacityModel(-385980.0))

    """

    name: str
    """Unique name of the species, e.g. ``"Ca+2"`` or ``"Calcite"``."""

    formula: Mapping[str, float]
    """Elemental formula, mapping element symbols to coefficients. The charge is not
    part of the formula."""

    thermo: StandardThermoModel
    """Model of the standard chemical potential and volume."""

    charge: float = 0.0
    """Electric charge in units of the elementary charge."""

    dissociation: Mapping[str, float] = field(default_factory=dict)
    """For aqueous complexes: the ions (by name) and their coefficients produced by
    dissociating one unit of the complex. Empty for ions and for species where the
    dissociation is inferred from the formulas of the ions in the mixture."""

    @classmethod
    def from_formula(
        cls,
        name: str,
        thermo: StandardThermoModel,
        formula: Optional[str] = None,
        charge: float = 0.0,
    ) -> Species:
        """Creates a species parsing the formula string (the name, if not given)."""
        return cls(name, parse_formula(formula or name), thermo, charge)

    @property
    def molar_mass(self) -> float:
        """Molar mass in ``[kg / mol]``."""
        return molar_mass(self.formula)

    @property
    def elements(self) -> list[str]:
        """Element symbols in the formula."""
        return [e for e, c in self.formula.items() if c != 0.0]

    def standard_gibbs_energy(self, T: float, P: float) -> ThermoScalar:
        """Standard chemical potential ``mu0(T, P)`` in ``[J / mol]``."""
        return self.thermo.gibbs_energy(T, P)

    def standard_volume(self, T: float, P: float) -> ThermoScalar:
        """Standard molar volume ``V0(T, P)`` in ``[m^3 / mol]``."""
        return self.thermo.volume(T, P)

    def __repr__(self) -> str:
        return f"Species({self.name!r}, charge={self.charge:g})"
