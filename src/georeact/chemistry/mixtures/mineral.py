"""Mineral mixtures: pure minerals (a single species) or solid solutions."""

from __future__ import annotations

from .general import GeneralMixture

__all__ = ["MineralMixture"]


class MineralMixture(GeneralMixture):
    """A mixture of mineral species.

    A pure mineral is a mixture with a single species, whose molar fraction is always
    one.

    """

    @property
    def is_pure(self) -> bool:
        return self.num_species == 1
