"""Chemical elements and parsing of chemical formulas.

Formulas are represented as mappings from element symbols to (possibly fractional)
coefficients, e.g. ``{"Ca": 1, "C": 1, "O": 3}`` for calcite.

"""

from __future__ import annotations

import re
from typing import Mapping

from ..utils.georeact_types import FormulaType
from .utils import ChemicalModellingError

__all__ = [
    "ELEMENT_MOLAR_MASSES",
    "CHARGE_ELEMENT",
    "parse_formula",
    "molar_mass",
    "formula_to_string",
]


ELEMENT_MOLAR_MASSES: dict[str, float] = {
    "H": 1.00794e-3,
    "He": 4.002602e-3,
    "Li": 6.941e-3,
    "B": 10.811e-3,
    "C": 12.0107e-3,
    "N": 14.0067e-3,
    "O": 15.9994e-3,
    "F": 18.9984032e-3,
    "Na": 22.98976928e-3,
    "Mg": 24.305e-3,
    "Al": 26.9815386e-3,
    "Si": 28.0855e-3,
    "P": 30.973762e-3,
    "S": 32.065e-3,
    "Cl": 35.453e-3,
    "Ar": 39.948e-3,
    "K": 39.0983e-3,
    "Ca": 40.078e-3,
    "Mn": 54.938045e-3,
    "Fe": 55.845e-3,
    "Br": 79.904e-3,
    "Sr": 87.62e-3,
    "Ba": 137.327e-3,
}
"""Molar masses of supported elements in ``[kg / mol]``."""

CHARGE_ELEMENT: str = "Z"
"""Symbol of the pseudo element representing electric charge in formula matrices."""

_TOKEN = re.compile(r"([A-Z][a-z]?|\(|\)|\d*\.\d+|\d+)")


def parse_formula(formula: str) -> dict[str, float]:
    """Parses a chemical formula like ``"CaCO3"`` or ``"Ca(HCO3)2"``.

    Charge suffixes (``"+"``, ``"-2"``, ``"++"``) and aggregate state suffixes
    (``"(aq)"``, ``"(g)"``, ``"(l)"``, ``"(s)"``) are ignored; the charge of a species
    is stored separately.

    Raises:
        ChemicalModellingError: If the formula contains unknown elements or unbalanced
            parentheses.

    """
    body = re.sub(r"\((aq|g|l|s|cr)\)$", "", formula.strip())
    body = re.sub(r"[+-]+\d*(\.\d+)?$", "", body)
    if not body:
        raise ChemicalModellingError(f"Empty chemical formula '{formula}'.")

    stack: list[dict[str, float]] = [{}]
    last: dict[str, float] | None = None
    pos = 0
    for match in _TOKEN.finditer(body):
        if match.start() != pos:
            raise ChemicalModellingError(
                f"Cannot parse '{body[pos:match.start()]}' in formula '{formula}'."
            )
        pos = match.end()
        token = match.group(0)
        if token == "(":
            stack.append({})
            last = None
        elif token == ")":
            if len(stack) == 1:
                raise ChemicalModellingError(f"Unbalanced ')' in formula '{formula}'.")
            last = stack.pop()
            _merge(stack[-1], last, 1.0)
        elif token[0].isdigit() or token[0] == ".":
            if last is None:
                raise ChemicalModellingError(
                    f"Coefficient without element in formula '{formula}'."
                )
            # the last group was already added once
            _merge(stack[-1], last, float(token) - 1.0)
            last = None
        else:
            if token not in ELEMENT_MOLAR_MASSES:
                raise ChemicalModellingError(
                    f"Unknown element '{token}' in formula '{formula}'."
                )
            last = {token: 1.0}
            _merge(stack[-1], last, 1.0)
    if pos != len(body):
        raise ChemicalModellingError(
            f"Cannot parse '{body[pos:]}' in formula '{formula}'."
        )
    if len(stack) != 1:
        raise ChemicalModellingError(f"Unbalanced '(' in formula '{formula}'.")
    return stack[0]


def _merge(target: dict[str, float], source: Mapping[str, float], factor: float):
    for element, coeff in source.items():
        target[element] = target.get(element, 0.0) + factor * coeff


def molar_mass(formula: FormulaType) -> float:
    """Molar mass in ``[kg / mol]`` of a formula (charge entries are ignored)."""
    return sum(
        ELEMENT_MOLAR_MASSES[element] * coeff
        for element, coeff in formula.items()
        if element != CHARGE_ELEMENT
    )


def formula_to_string(formula: FormulaType) -> str:
    """Compact string representation, e.g. ``"Ca1 C1 O3"``."""
    return " ".join(f"{e}{c:g}" for e, c in formula.items())
