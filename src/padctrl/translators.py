"""
Per-model speed translators.

Each supported model maps to one stateless translator converting between
the device's speed units and a physical unit. The table is fixed; models
that are not in it get no translator, and the controller runs in degraded
mode rather than guess a scale.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from .core import REFERENCE_MODEL
from .errors import InvalidArgument


@dataclass(frozen=True)
class ModelTranslator:
    """Linear speed conversion: physical = raw / scale."""

    name: str
    unit: str
    scale: int

    def to_physical(self, raw: int) -> float:
        """Convert device units to physical speed."""
        return raw / self.scale

    def to_raw(self, physical: float) -> int:
        """Convert a physical speed to device units.

        Args:
            physical: Speed in ``self.unit``

        Returns:
            Nearest device speed value

        Raises:
            InvalidArgument: If the speed is negative or not finite
        """
        if not math.isfinite(physical):
            raise InvalidArgument(f"Speed must be a finite number, got {physical}")
        if physical < 0:
            raise InvalidArgument(f"Speed must not be negative, got {physical}")
        return round(physical * self.scale)

    @property
    def max_speed(self) -> float:
        """Highest speed that still fits in the one-byte argument."""
        return self.to_physical(0xFF)


_TRANSLATORS: Dict[str, ModelTranslator] = {
    REFERENCE_MODEL: ModelTranslator(name=REFERENCE_MODEL, unit="mph", scale=16),
}


def translator_for(model_name: Optional[str]) -> Optional[ModelTranslator]:
    """Look up the translator for an advertised model name (exact match)."""
    if model_name is None:
        return None
    return _TRANSLATORS.get(model_name)


def supported_models() -> List[str]:
    """Model names with a registered translator."""
    return sorted(_TRANSLATORS)
