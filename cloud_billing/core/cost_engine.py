"""
Cost computation for instance and storage selections.

Prices a usage selection against an injected pricing catalog. Results are
exact IEEE double arithmetic; rounding for display is left to the caller.
"""

import math
from dataclasses import dataclass
from typing import Any

from .catalog import PricingCatalog
from .errors import CostEngineError, InvalidQuantity

# Average hours per month, used to turn a monthly storage rate into an hourly one
HOURS_PER_MONTH = 730


@dataclass(frozen=True)
class UsageSelection:
    """What the user asked to price."""
    instance_type_id: str
    storage_type_id: str
    storage_size: Any  # Storage units (GB)
    hours: Any


@dataclass(frozen=True)
class CostBreakdown:
    """Computed cost of a selection."""
    instance_cost: float
    storage_cost: float
    total_cost: float


ZERO_BREAKDOWN = CostBreakdown(instance_cost=0.0, storage_cost=0.0, total_cost=0.0)


class CostEngine:
    """Prices usage selections against a pricing catalog."""

    def __init__(self, catalog: PricingCatalog):
        self.catalog = catalog

    def compute_cost(self, selection: UsageSelection) -> CostBreakdown:
        """Compute the cost breakdown for a selection.

        Identifiers are resolved before quantities are checked, and nothing
        is computed until both pass.

        Args:
            selection: Instance type, storage type, storage size and hours

        Returns:
            CostBreakdown where instance_cost + storage_cost == total_cost

        Raises:
            UnknownInstanceType: If the instance type is not in the catalog
            UnknownStorageClass: If the storage class is not in the catalog
            InvalidQuantity: If storage_size or hours is unusable, or the
                resulting cost overflows
        """
        instance = self.catalog.lookup_instance(selection.instance_type_id)
        storage = self.catalog.lookup_storage_class(selection.storage_type_id)
        storage_size = validate_quantity("storage_size", selection.storage_size)
        hours = validate_quantity("hours", selection.hours)

        instance_cost = instance.hourly_rate * hours
        storage_cost = storage.monthly_rate_per_unit * storage_size * (hours / HOURS_PER_MONTH)
        total_cost = instance_cost + storage_cost

        # Quantities near the float limit can still overflow once priced
        if not math.isfinite(instance_cost):
            raise InvalidQuantity("hours", hours, "cost is not finite")
        if not math.isfinite(total_cost):
            raise InvalidQuantity("storage_size", storage_size, "cost is not finite")

        return CostBreakdown(
            instance_cost=instance_cost,
            storage_cost=storage_cost,
            total_cost=total_cost
        )

    def preview_cost(self, selection: UsageSelection) -> CostBreakdown:
        """Compute a cost for live display.

        Incomplete or invalid selections price at zero instead of raising,
        so an estimate can be shown while the user is still typing.
        """
        try:
            return self.compute_cost(selection)
        except CostEngineError:
            return ZERO_BREAKDOWN


def validate_quantity(field: str, value: Any) -> float:
    """Check a numeric field is a finite, non-negative real number.

    Raises:
        InvalidQuantity: Naming the field when the value is unusable
    """
    if value is None:
        raise InvalidQuantity(field, value, "missing")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidQuantity(field, value, "not a number")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise InvalidQuantity(field, value, "not finite")
    if value < 0:
        raise InvalidQuantity(field, value, "negative")
    return value
