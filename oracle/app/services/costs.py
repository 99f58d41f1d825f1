"""Inference cost table.

Each mode has a fixed unit cost in credits and a flag telling the
authorization engine which subscription cap governs it.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from oracle.app.exceptions import InvalidQuantityError, UnknownModeError


class InferenceMode(str, Enum):
    BASIC = "basic"
    TAGS = "tags"
    PRICE_ACCURACY = "price_accuracy"
    FULL = "full"


@dataclass(frozen=True)
class ModeProfile:
    unit_cost: int
    # Governed by the cap shared across all tiers instead of the plan's own cap
    uses_global_cap: bool = False


MODE_PROFILES: Dict[InferenceMode, ModeProfile] = {
    InferenceMode.BASIC: ModeProfile(unit_cost=1),
    InferenceMode.TAGS: ModeProfile(unit_cost=2),
    InferenceMode.PRICE_ACCURACY: ModeProfile(unit_cost=4, uses_global_cap=True),
    InferenceMode.FULL: ModeProfile(unit_cost=6, uses_global_cap=True),
}


def parse_mode(mode: Any) -> InferenceMode:
    """Resolve a mode name to an InferenceMode.

    Raises:
        UnknownModeError: If mode is not in the cost table
    """
    if isinstance(mode, InferenceMode):
        return mode
    try:
        return InferenceMode(mode)
    except ValueError:
        raise UnknownModeError(mode) from None


def validate_quantity(quantity: Any) -> int:
    """Return quantity as an int if it is a positive, finite whole number.

    Raises:
        InvalidQuantityError: Otherwise
    """
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
        raise InvalidQuantityError(quantity)
    if isinstance(quantity, float):
        if not math.isfinite(quantity) or not quantity.is_integer():
            raise InvalidQuantityError(quantity)
        quantity = int(quantity)
    if quantity <= 0:
        raise InvalidQuantityError(quantity)
    return quantity


def unit_cost(mode: Any) -> int:
    return MODE_PROFILES[parse_mode(mode)].unit_cost


def uses_global_cap(mode: Any) -> bool:
    return MODE_PROFILES[parse_mode(mode)].uses_global_cap


def get_inference_cost(mode: Any, quantity: Any = 1) -> int:
    """Credit cost of running `quantity` inferences in `mode`.

    Raises:
        UnknownModeError: If mode is not in the cost table
        InvalidQuantityError: If quantity is not a positive whole number
    """
    profile = MODE_PROFILES[parse_mode(mode)]
    return profile.unit_cost * validate_quantity(quantity)
