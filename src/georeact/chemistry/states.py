"""Module containing data structures for thermodynamic and chemical quantities carrying
their derivatives, and the state of a chemical system.

Quantities of chemical models depend on temperature ``T``, pressure ``P`` and the
amounts of species ``n``. They are represented by forward-mode derivative-carrying
objects:

- :class:`ThermoScalar`, :class:`ThermoVector`: functions of ``(T, P)`` with
  attributes ``val``, ``ddT``, ``ddP``.
- :class:`ChemicalScalar`, :class:`ChemicalVector`: functions of ``(T, P, n)`` with an
  additional gradient ``ddn`` with respect to the species amounts. For scalars
  ``ddn`` is a 1D array of length ``num_species``, for vectors a 2D array of
  ``shape=(len(val), num_species)``.

Arithmetic between these objects and with numbers or numpy arrays propagates the
derivatives with the chain rule. Mixing thermo and chemical quantities results in a
chemical quantity. The functions :func:`exp`, :func:`log`, :func:`sqrt` and
:func:`power` are the non-linear functions available for them.

Note:
    The result type of an operation is determined by the dimension of the resulting
    value, and by whether any of the operands depends on ``n``. Hence a scalar times a
    vector is a vector.

"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Union

import numpy as np

if TYPE_CHECKING:
    from .properties import ChemicalProperties
    from .system import ChemicalSystem

__all__ = [
    "ThermoScalar",
    "ThermoVector",
    "ChemicalScalar",
    "ChemicalVector",
    "ChemicalState",
    "exp",
    "log",
    "sqrt",
    "power",
]


def _as_array(x: Any) -> np.ndarray:
    return np.asarray(x, dtype=float)


class _Differentiable:
    """Base class implementing the arithmetic of derivative-carrying quantities.

    Derived classes are dataclasses with fields ``val``, ``ddT``, ``ddP`` and
    optionally ``ddn``.

    """

    # numpy defers to the reflected operators of this class
    __array_ufunc__ = None

    val: Any
    ddT: Any
    ddP: Any

    @property
    def _ddn(self) -> Optional[np.ndarray]:
        return getattr(self, "ddn", None)

    def __getitem__(self, idx) -> _Differentiable:
        ddn = self._ddn
        return _make(
            _as_array(self.val)[idx],
            _as_array(self.ddT)[idx],
            _as_array(self.ddP)[idx],
            None if ddn is None else ddn[idx],
        )

    def __neg__(self) -> _Differentiable:
        ddn = self._ddn
        return _make(
            -_as_array(self.val),
            -_as_array(self.ddT),
            -_as_array(self.ddP),
            None if ddn is None else -ddn,
        )

    def __add__(self, other) -> _Differentiable:
        o = _lift(other)
        return _make(
            _as_array(self.val) + o.val,
            _as_array(self.ddT) + o.ddT,
            _as_array(self.ddP) + o.ddP,
            _add_ddn(self._ddn, o.ddn),
        )

    def __radd__(self, other) -> _Differentiable:
        return self + other

    def __sub__(self, other) -> _Differentiable:
        return self + (-_lift(other))

    def __rsub__(self, other) -> _Differentiable:
        return _lift(other) + (-self)

    def __mul__(self, other) -> _Differentiable:
        o = _lift(other)
        a_val = _as_array(self.val)
        b_val = o.val
        ddn = None
        if self._ddn is not None:
            ddn = self._ddn * b_val[..., None]
        if o.ddn is not None:
            term = a_val[..., None] * o.ddn
            ddn = term if ddn is None else ddn + term
        return _make(
            a_val * b_val,
            _as_array(self.ddT) * b_val + a_val * o.ddT,
            _as_array(self.ddP) * b_val + a_val * o.ddP,
            ddn,
        )

    def __rmul__(self, other) -> _Differentiable:
        return self * other

    def __truediv__(self, other) -> _Differentiable:
        return self * _quantity(other).reciprocal()

    def __rtruediv__(self, other) -> _Differentiable:
        return self.reciprocal() * other

    def __pow__(self, exponent: float) -> _Differentiable:
        return power(self, exponent)

    def __rmatmul__(self, matrix: np.ndarray) -> _Differentiable:
        """Applies a constant matrix from the left, e.g. ``W @ n``-like maps."""
        M = _as_array(matrix)
        ddn = self._ddn
        return _make(
            M @ _as_array(self.val),
            M @ _as_array(self.ddT),
            M @ _as_array(self.ddP),
            None if ddn is None else M @ ddn,
        )

    def reciprocal(self) -> _Differentiable:
        """Returns ``1 / self``."""
        val = _as_array(self.val)
        inv = 1.0 / val
        factor = _as_array(-(inv**2))
        ddn = self._ddn
        return _make(
            inv,
            _chain(factor, _as_array(self.ddT)),
            _chain(factor, _as_array(self.ddP)),
            None if ddn is None else _chain(factor[..., None], ddn),
        )

    def sum(self) -> _Differentiable:
        """Sum of all entries of a vector quantity."""
        ddn = self._ddn
        return _make(
            np.sum(self.val),
            np.sum(self.ddT),
            np.sum(self.ddP),
            None if ddn is None else np.sum(ddn, axis=0),
        )

    def dot(self, coefficients: np.ndarray) -> _Differentiable:
        """Returns ``sum_i c_i self_i`` for a constant vector ``c``."""
        return _as_array(coefficients) @ self

    def copy(self) -> _Differentiable:
        return copy.deepcopy(self)


def _chain(df: np.ndarray, d: np.ndarray) -> np.ndarray:
    """Chain rule product ``df * d``, zero wherever ``d`` is zero.

    Infinite ``df`` occur for zero values in :func:`log` and :func:`sqrt` and must not
    spread into derivatives which do not depend on that value.

    """
    with np.errstate(invalid="ignore"):
        return np.where(d == 0.0, 0.0, df * d)


def _apply(x: Any, f_val: np.ndarray, df: np.ndarray) -> Any:
    """Returns ``f(x)`` given the values ``f(x.val)`` and ``f'(x.val)``."""
    if not isinstance(x, _Differentiable):
        return f_val if np.ndim(f_val) > 0 else float(f_val)
    df = _as_array(df)
    ddn = x._ddn
    return _make(
        f_val,
        _chain(df, _as_array(x.ddT)),
        _chain(df, _as_array(x.ddP)),
        None if ddn is None else _chain(df[..., None], ddn),
    )


def exp(x: Any) -> Any:
    """Exponential function for numbers, arrays and derivative-carrying quantities."""
    v = np.exp(_as_array(getattr(x, "val", x)))
    return _apply(x, v, v)


def log(x: Any) -> Any:
    """Natural logarithm for numbers, arrays and derivative-carrying quantities.

    Zero values result in ``-inf`` without a numpy warning.

    """
    val = _as_array(getattr(x, "val", x))
    with np.errstate(divide="ignore"):
        return _apply(x, np.log(val), 1.0 / val)


def sqrt(x: Any) -> Any:
    """Square root for numbers, arrays and derivative-carrying quantities."""
    val = _as_array(getattr(x, "val", x))
    v = np.sqrt(val)
    with np.errstate(divide="ignore"):
        return _apply(x, v, 0.5 / v)


def power(x: Any, exponent: float) -> Any:
    """Returns ``x**exponent`` for a constant exponent."""
    val = _as_array(getattr(x, "val", x))
    with np.errstate(divide="ignore", invalid="ignore"):
        return _apply(x, val**exponent, exponent * val ** (exponent - 1.0))


class _Operand:
    """Light-weight view of operands as arrays. Numbers and arrays have zero
    derivatives and no dependency on species amounts (``ddn=None``)."""

    __slots__ = ("val", "ddT", "ddP", "ddn")

    def __init__(self, val, ddT=None, ddP=None, ddn=None):
        self.val = _as_array(val)
        self.ddT = np.zeros_like(self.val) if ddT is None else _as_array(ddT)
        self.ddP = np.zeros_like(self.val) if ddP is None else _as_array(ddP)
        self.ddn = ddn

    def __neg__(self) -> _Operand:
        return _Operand(
            -self.val, -self.ddT, -self.ddP, None if self.ddn is None else -self.ddn
        )

    def __add__(self, other) -> _Differentiable:
        o = _lift(other)
        return _make(
            self.val + o.val,
            self.ddT + o.ddT,
            self.ddP + o.ddP,
            _add_ddn(self.ddn, o.ddn),
        )


def _lift(x: Any) -> _Operand:
    if isinstance(x, _Operand):
        return x
    if isinstance(x, _Differentiable):
        return _Operand(x.val, x.ddT, x.ddP, x._ddn)
    return _Operand(x)


def _quantity(x: Any) -> Any:
    if isinstance(x, _Differentiable):
        return x
    v = _as_array(x)
    return _make(v, np.zeros_like(v), np.zeros_like(v))


def _add_ddn(a: Optional[np.ndarray], b: Optional[np.ndarray]):
    if a is None:
        return b
    if b is None:
        return a
    return a + b


def _make(val, ddT, ddP, ddn=None) -> Any:
    """Creates the derivative-carrying quantity matching the dimension of ``val`` and
    the presence of ``ddn``.

    Derivative arrays are broadcasted to the shape of ``val``.

    """
    val = _as_array(val)
    ddT = np.broadcast_to(_as_array(ddT), val.shape).copy()
    ddP = np.broadcast_to(_as_array(ddP), val.shape).copy()
    if ddn is not None:
        ddn = _as_array(ddn)
        ddn = np.broadcast_to(ddn, val.shape + ddn.shape[-1:]).copy()
    if val.ndim == 0:
        if ddn is None:
            return ThermoScalar(float(val), float(ddT), float(ddP))
        return ChemicalScalar(float(val), float(ddT), float(ddP), ddn)
    if ddn is None:
        return ThermoVector(val, ddT, ddP)
    return ChemicalVector(val, ddT, ddP, ddn)


@dataclass(eq=False)
class ThermoScalar(_Differentiable):
    """A scalar function of temperature and pressure, with its partial derivatives."""

    val: float = 0.0
    """Value of the function."""

    ddT: float = 0.0
    """Partial derivative with respect to temperature ``[1/K]``."""

    ddP: float = 0.0
    """Partial derivative with respect to pressure ``[1/Pa]``."""

    @classmethod
    def temperature(cls, T: float) -> ThermoScalar:
        """Returns the temperature variable ``T`` itself (``ddT = 1``)."""
        return cls(float(T), 1.0, 0.0)

    @classmethod
    def pressure(cls, P: float) -> ThermoScalar:
        """Returns the pressure variable ``P`` itself (``ddP = 1``)."""
        return cls(float(P), 0.0, 1.0)


@dataclass(eq=False)
class ThermoVector(_Differentiable):
    """A vector-valued function of temperature and pressure, such as the standard
    chemical potentials of all species."""

    val: np.ndarray = field(default_factory=lambda: np.zeros(0))
    ddT: np.ndarray = field(default_factory=lambda: np.zeros(0))
    ddP: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self) -> None:
        self.val = _as_array(self.val)
        self.ddT = _as_array(self.ddT)
        self.ddP = _as_array(self.ddP)
        if not (self.val.shape == self.ddT.shape == self.ddP.shape):
            raise ValueError(
                f"Inconsistent shapes of values {self.val.shape} and derivatives"
                + f" {self.ddT.shape}, {self.ddP.shape}."
            )

    @classmethod
    def zeros(cls, size: int) -> ThermoVector:
        return cls(np.zeros(size), np.zeros(size), np.zeros(size))

    @classmethod
    def from_scalars(cls, scalars: list[ThermoScalar]) -> ThermoVector:
        """Stacks a list of thermo scalars into a vector."""
        return cls(
            np.array([s.val for s in scalars], dtype=float),
            np.array([s.ddT for s in scalars], dtype=float),
            np.array([s.ddP for s in scalars], dtype=float),
        )


@dataclass(eq=False)
class ChemicalScalar(_Differentiable):
    """A scalar function of temperature, pressure and species amounts."""

    val: float = 0.0
    ddT: float = 0.0
    ddP: float = 0.0
    ddn: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Gradient with respect to the species amounts, ``shape=(num_species,)``."""

    def __post_init__(self) -> None:
        self.ddn = _as_array(self.ddn)
        if self.ddn.ndim != 1:
            raise ValueError(
                f"Gradient of a chemical scalar must be 1D, got shape {self.ddn.shape}."
            )

    @classmethod
    def zero(cls, num_species: int) -> ChemicalScalar:
        return cls(0.0, 0.0, 0.0, np.zeros(num_species))


@dataclass(eq=False)
class ChemicalVector(_Differentiable):
    """A vector-valued function of temperature, pressure and species amounts, such as
    the chemical potentials or ln activities of the species."""

    val: np.ndarray = field(default_factory=lambda: np.zeros(0))
    ddT: np.ndarray = field(default_factory=lambda: np.zeros(0))
    ddP: np.ndarray = field(default_factory=lambda: np.zeros(0))
    ddn: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    """Jacobian with respect to the species amounts,
    ``shape=(len(val), num_species)``."""

    def __post_init__(self) -> None:
        self.val = _as_array(self.val)
        self.ddT = _as_array(self.ddT)
        self.ddP = _as_array(self.ddP)
        self.ddn = _as_array(self.ddn)
        if not (self.val.shape == self.ddT.shape == self.ddP.shape):
            raise ValueError(
                f"Inconsistent shapes of values {self.val.shape} and derivatives"
                + f" {self.ddT.shape}, {self.ddP.shape}."
            )
        if self.ddn.ndim != 2 or self.ddn.shape[0] != self.val.shape[0]:
            raise ValueError(
                f"Jacobian of shape {self.ddn.shape} inconsistent with"
                + f" {self.val.shape[0]} values."
            )

    @classmethod
    def zeros(cls, size: int, num_species: int) -> ChemicalVector:
        return cls(
            np.zeros(size), np.zeros(size), np.zeros(size),
            np.zeros((size, num_species)),
        )

    @classmethod
    def variables(cls, n: np.ndarray) -> ChemicalVector:
        """Returns the species amounts ``n`` as independent variables, with identity
        Jacobian."""
        n = _as_array(n)
        return cls(n.copy(), np.zeros_like(n), np.zeros_like(n), np.eye(n.size))

    @property
    def num_species(self) -> int:
        return self.ddn.shape[1]

    def set_row(self, i: int, scalar: ChemicalScalar | ThermoScalar | float) -> None:
        """Overwrites entry ``i`` with a scalar quantity (in-place)."""
        s = _lift(scalar)
        self.val[i] = s.val
        self.ddT[i] = s.ddT
        self.ddP[i] = s.ddP
        self.ddn[i] = 0.0 if s.ddn is None else s.ddn

    def set_rows(self, idx: np.ndarray, other: ChemicalVector | ThermoVector) -> None:
        """Overwrites the entries ``idx`` with the entries of ``other`` (in-place)."""
        self.val[idx] = other.val
        self.ddT[idx] = other.ddT
        self.ddP[idx] = other.ddP
        self.ddn[idx] = 0.0 if getattr(other, "ddn", None) is None else other.ddn

    def embed(self, cols: np.ndarray, num_species: int) -> ChemicalVector:
        """Returns a copy whose Jacobian columns are placed at ``cols`` of a larger
        Jacobian with ``num_species`` columns.

        Used to map derivatives with respect to the species of a phase into the
        derivatives with respect to all species of a system.

        """
        ddn = np.zeros((self.val.shape[0], num_species))
        ddn[:, cols] = self.ddn
        return ChemicalVector(self.val.copy(), self.ddT.copy(), self.ddP.copy(), ddn)


ChemicalQuantity = Union[ThermoScalar, ThermoVector, ChemicalScalar, ChemicalVector]


@dataclass(eq=False)
class ChemicalState:
    """The state of a chemical system: temperature, pressure and species amounts.

    Additionally holds the Lagrange multipliers of the last equilibrium computation,
    which serve as warm start for subsequent computations.

    """

    system: ChemicalSystem
    """The chemical system this state belongs to."""

    T: float = 298.15
    """Temperature in ``[K]``."""

    P: float = 1.0e5
    """Pressure in ``[Pa]``."""

    n: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Amounts of species in ``[mol]``, ordered as in the system."""

    y: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Lagrange multipliers of the mass balance (dimensionless element potentials
    ``mu_e / RT``), ordered as the elements of the system."""

    z: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Lagrange multipliers of the non-negativity bounds of species amounts."""

    def __post_init__(self) -> None:
        N = self.system.num_species
        E = self.system.num_elements
        self.n = np.zeros(N) if np.size(self.n) == 0 else _as_array(self.n).copy()
        self.y = np.zeros(E) if np.size(self.y) == 0 else _as_array(self.y).copy()
        self.z = np.zeros(N) if np.size(self.z) == 0 else _as_array(self.z).copy()
        if self.n.shape != (N,):
            raise ValueError(f"Expecting {N} species amounts, got {self.n.shape}.")

    def set_temperature(self, T: float) -> None:
        self.T = float(T)

    def set_pressure(self, P: float) -> None:
        self.P = float(P)

    def set_species_amounts(self, n: np.ndarray) -> None:
        n = _as_array(n)
        if n.shape != self.n.shape:
            raise ValueError(
                f"Expecting {self.n.shape[0]} species amounts, got {n.shape}."
            )
        self.n = n.copy()

    def set_species_amount(self, species: str | int, amount: float) -> None:
        """Sets the amount of a species given by name or index."""
        i = self._species_index(species)
        self.n[i] = float(amount)

    def species_amount(self, species: str | int) -> float:
        return float(self.n[self._species_index(species)])

    def element_amounts(self) -> np.ndarray:
        """Amounts of elements ``W n`` (including the charge row, if present)."""
        return self.system.formula_matrix @ self.n

    def phase_amounts(self) -> np.ndarray:
        """Total amounts of species in each phase."""
        return np.array(
            [self.n[s].sum() for s in self.system.phase_slices], dtype=float
        )

    def properties(self) -> ChemicalProperties:
        """Returns the thermodynamic properties of the system at this state."""
        return self.system.properties(self.T, self.P, self.n)

    def copy(self) -> ChemicalState:
        """Deep copy of the state, sharing the (immutable) system."""
        return ChemicalState(
            self.system, self.T, self.P, self.n.copy(), self.y.copy(), self.z.copy()
        )

    def __deepcopy__(self, memo) -> ChemicalState:
        return self.copy()

    def _species_index(self, species: str | int) -> int:
        if isinstance(species, str):
            return self.system.index_species_or_raise(species)
        return int(species)
