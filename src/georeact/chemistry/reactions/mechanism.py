"""Mechanisms of mineral dissolution and precipitation, configurable by strings.

A mechanism is given by a string of options ``key=value [unit]``, separated by commas
or white space, for example:

.. code-block:: python

    MineralMechanism.from_string("logk=-5.81 mol/(m2*s), Ea=23.5 kJ/mol, p=1, q=1")
    MineralMechanism.from_string("logk=-0.30 Ea=14.4 kJ/mol a[H+]=1.0")

Supported options:

- ``logk``: decimal logarithm of the rate constant. The unit must be convertible to
  ``mol/(m2*s)``, which is also the default if no unit is given.
- ``Ea``: Arrhenius activation energy, with a unit convertible to ``kJ/mol``
  (required).
- ``p``, ``q``: dimensionless exponents of the saturation term ``|1 - Omega^p|^q``.
- Catalysts ``a[species]=power`` or ``activity[species]=power`` (activity of a
  species) and ``p[gas]=power`` or ``pressure[gas]=power`` (partial pressure of a gas
  in bar).

Units are converted with :mod:`astropy.units`.

"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Sequence

import astropy.units as u

__all__ = [
    "MECHANISM_FORMAT",
    "MechanismParsingError",
    "UnknownMechanismOptionError",
    "MissingUnitError",
    "UnitConversionError",
    "MineralCatalyst",
    "MineralMechanism",
]

logger = logging.getLogger(__name__)

MECHANISM_FORMAT: str = (
    "'key=value [unit]' with keys logk, Ea, p, q, a[species], activity[species],"
    " p[gas], pressure[gas]"
)
"""Description of the expected format of mechanism options, used in error messages."""

RATE_CONSTANT_UNIT: str = "mol/(m2*s)"
ACTIVATION_ENERGY_UNIT: str = "kJ/mol"

_KEY = r"[A-Za-z_]+(?:\[[^\]\s]+\])?"
_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_OPTION = re.compile(
    rf"(?P<key>{_KEY})\s*=\s*(?P<value>{_NUMBER})"
    # unit words, up to the next option
    rf"(?P<unit>(?:\s+(?!{_KEY}\s*=)[^\s,=]+)*)"
)
_CATALYST = re.compile(r"^(?P<quantity>a|activity|p|pressure)\[(?P<species>[^\]]+)\]$")


class MechanismParsingError(ValueError):
    """Base class of errors raised when parsing a mineral mechanism."""


class UnknownMechanismOptionError(MechanismParsingError):
    """Raised for options with an incorrect format or an unsupported key."""


class MissingUnitError(MechanismParsingError):
    """Raised if a quantity requiring a unit was given without one."""


class UnitConversionError(MechanismParsingError):
    """Raised if a unit cannot be converted to the unit required by a quantity."""


def _convert(value: float, unit: str, target: str, quantity: str) -> float:
    try:
        return float((value * u.Unit(unit)).to(u.Unit(target)).value)
    except (ValueError, u.UnitsError) as err:
        raise UnitConversionError(
            f"Cannot set the {quantity} of the mineral mechanism: unit '{unit}' cannot"
            + f" be converted to {target}."
        ) from err


@dataclass(frozen=True)
class MineralCatalyst:
    """A catalysing (or inhibiting) factor ``c^power`` of a mineral mechanism, with
    ``c`` the activity of a species or the partial pressure of a gas in bar."""

    species: str
    """Name of the species as given in the mechanism."""

    quantity: str
    """Either ``"activity"`` or ``"pressure"``."""

    power: float

    @classmethod
    def from_string(cls, option: str) -> MineralCatalyst:
        """Parses a catalyst option such as ``"a[H+]=1.0"`` or
        ``"pressure[CO2]=0.5"``.

        Raises:
            UnknownMechanismOptionError: If the option has an incorrect format.

        """
        match = _OPTION.fullmatch(option.strip())
        catalyst = _CATALYST.match(match.group("key")) if match else None
        if catalyst is None or match.group("unit").strip():
            raise UnknownMechanismOptionError(
                f"Cannot set the catalyst '{option}' in the mineral mechanism,"
                + f" expecting {MECHANISM_FORMAT}."
            )
        quantity = "pressure"
        if catalyst.group("quantity") in ("a", "activity"):
            quantity = "activity"
        return cls(catalyst.group("species"), quantity, float(match.group("value")))


@dataclass
class MineralMechanism:
    """A mechanism of a mineral reaction, contributing

    ``k(T) |1 - Omega^p|^q prod_c c^power``

    to the rate per unit surface area, with
    ``k(T) = kappa exp(-Ea / R (1 / T - 1 / 298.15 K))``.

    The setters return the mechanism itself such that calls can be chained.

    """

    kappa: float = 0.0
    """Rate constant at 25 C in ``[mol / (m^2 s)]``."""

    Ea: float = 0.0
    """Activation energy in ``[kJ / mol]``."""

    p: float = 1.0
    q: float = 1.0

    catalysts: list[MineralCatalyst] = field(default_factory=list)

    @classmethod
    def from_string(cls, mechanism: str) -> MineralMechanism:
        """Parses a mechanism string.

        Raises:
            UnknownMechanismOptionError: For malformed tokens and unsupported keys.
            MissingUnitError: If ``Ea`` is given without a unit.
            UnitConversionError: If a unit is not convertible to the required unit.

        """
        result = cls()
        for chunk in mechanism.split(","):
            position = 0
            for match in _OPTION.finditer(chunk):
                result._check_gap(chunk[position : match.start()])
                position = match.end()
                result._set_option(match)
            result._check_gap(chunk[position:])
        logger.debug(f"Parsed mineral mechanism '{mechanism}' into {result}.")
        return result

    @staticmethod
    def _check_gap(text: str) -> None:
        if text.strip():
            raise UnknownMechanismOptionError(
                f"Cannot set the option '{text.strip()}' in the mineral mechanism,"
                + f" expecting {MECHANISM_FORMAT}."
            )

    def _set_option(self, match: re.Match) -> None:
        key = match.group("key")
        value = float(match.group("value"))
        unit = match.group("unit").strip()
        option = match.group(0).strip()

        if _CATALYST.match(key):
            self.catalysts.append(MineralCatalyst.from_string(option))
        elif key == "logk":
            self.set_rate_constant(10.0**value, unit or RATE_CONSTANT_UNIT)
        elif key == "Ea":
            if not unit:
                raise MissingUnitError(
                    f"Cannot set the activation energy '{option}' in the mineral"
                    + f" mechanism: a unit convertible to {ACTIVATION_ENERGY_UNIT} is"
                    + " required, e.g. 'Ea=45 kJ/mol'."
                )
            self.set_activation_energy(value, unit)
        elif key in ("p", "q") and not unit:
            setattr(self, key, value)
        else:
            raise UnknownMechanismOptionError(
                f"Cannot set the option '{option}' in the mineral mechanism,"
                + f" expecting {MECHANISM_FORMAT}."
            )

    def set_rate_constant(
        self, value: float, unit: str = RATE_CONSTANT_UNIT
    ) -> MineralMechanism:
        self.kappa = _convert(value, unit, RATE_CONSTANT_UNIT, "rate constant")
        return self

    def set_activation_energy(
        self, value: float, unit: str = ACTIVATION_ENERGY_UNIT
    ) -> MineralMechanism:
        self.Ea = _convert(value, unit, ACTIVATION_ENERGY_UNIT, "activation energy")
        return self

    def set_power_p(self, value: float) -> MineralMechanism:
        self.p = float(value)
        return self

    def set_power_q(self, value: float) -> MineralMechanism:
        self.q = float(value)
        return self

    def set_catalysts(
        self, catalysts: str | MineralCatalyst | Sequence[MineralCatalyst]
    ) -> MineralMechanism:
        """Replaces the catalysts, given as a catalyst option string, a catalyst or a
        sequence of catalysts."""
        if isinstance(catalysts, str):
            self.catalysts = [MineralCatalyst.from_string(catalysts)]
        elif isinstance(catalysts, MineralCatalyst):
            self.catalysts = [catalysts]
        else:
            self.catalysts = list(catalysts)
        return self
