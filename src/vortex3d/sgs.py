from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .particles import ParticleField


@dataclass(slots=True)
class NoSGS:
    """Subgrid-scale model that leaves every SGS contribution at zero."""

    def __call__(self, field: ParticleField) -> None:
        return None


sgs_none = NoSGS()
