"""Contains utility functions for the chemistry subpackage, as well as the custom
exception classes :class:`ChemicalModellingError` and :class:`SpeciesNotFoundError`."""

from __future__ import annotations

from typing import Sequence

import numpy as np
import scipy.linalg

__all__ = [
    "index_of",
    "independent_rows",
    "ChemicalModellingError",
    "SpeciesNotFoundError",
]


class ChemicalModellingError(Exception):
    """Custom exception class to alert the user when constructing an inconsistent
    chemical model.

    Raised for example for an aqueous phase without water, for a reaction equation
    which cannot be parsed, or for a rate requested from a reaction without a rate
    law.

    """


class SpeciesNotFoundError(ChemicalModellingError, KeyError):
    """Raised when a species (or phase, or element) name is looked up but not present.

    Lookups by index return a sentinel value instead (the number of entries).

    """

    def __str__(self) -> str:
        # KeyError quotes its argument, which is not wanted for messages.
        return str(self.args[0]) if self.args else ""


def index_of(names: Sequence[str], name: str) -> int:
    """Returns the position of ``name`` in ``names``.

    If ``name`` is not found, ``len(names)`` is returned as a sentinel value, such that
    ``index_of(names, name) < len(names)`` can be used as a membership test.

    """
    for i, n in enumerate(names):
        if n == name:
            return i
    return len(names)


def independent_rows(A: np.ndarray, tol: float = 1e-12) -> np.ndarray:
    """Returns the indices of a maximal set of linearly independent rows of ``A``.

    Uses a QR decomposition of ``A.T`` with column pivoting. The returned indices are
    sorted in ascending order.

    Parameters:
        A: ``shape=(m, n)``

            A 2D array, e.g. a formula matrix where the charge row depends on the
            element rows.
        tol: Relative tolerance on the diagonal of the triangular factor.

    """
    A = np.asarray(A, dtype=float)
    if A.shape[0] == 0:
        return np.zeros(0, dtype=int)
    _, R, piv = scipy.linalg.qr(A.T, mode="economic", pivoting=True)
    diag = np.abs(np.diag(R))
    if diag.size == 0 or diag[0] == 0.0:
        return np.zeros(0, dtype=int)
    rank = int(np.sum(diag > tol * diag[0]))
    return np.sort(piv[:rank])
