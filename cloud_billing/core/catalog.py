"""
Pricing catalog for compute instances and storage classes.

Holds the static rate tables the cost engine prices selections against.
A catalog is an immutable value: build one explicitly and pass it to the
components that need it.
"""

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from .errors import UnknownInstanceType, UnknownStorageClass


@dataclass(frozen=True)
class InstanceSpec:
    """One purchasable compute shape."""
    identifier: str
    display_name: str
    vcpu: int
    memory_gib: float
    hourly_rate: float  # Currency per hour
    monthly_price: Optional[float] = None  # List price for a full month, display only

    def __post_init__(self):
        """Validate the spec describes a real machine with a usable rate."""
        if not self.identifier:
            raise ValueError("instance identifier cannot be empty")
        if isinstance(self.vcpu, bool) or not isinstance(self.vcpu, int) or self.vcpu <= 0:
            raise ValueError(f"vcpu for {self.identifier} must be a positive integer")
        if not _is_real(self.memory_gib) or self.memory_gib <= 0:
            raise ValueError(f"memory_gib for {self.identifier} must be > 0")
        if not _is_real(self.hourly_rate) or self.hourly_rate < 0:
            raise ValueError(f"hourly_rate for {self.identifier} must be >= 0")
        if self.monthly_price is not None and (
            not _is_real(self.monthly_price) or self.monthly_price < 0
        ):
            raise ValueError(f"monthly_price for {self.identifier} must be >= 0")


@dataclass(frozen=True)
class StorageClass:
    """One storage tier, priced per unit per 730-hour month."""
    identifier: str
    monthly_rate_per_unit: float
    description: str = ""

    def __post_init__(self):
        if not self.identifier:
            raise ValueError("storage identifier cannot be empty")
        if not _is_real(self.monthly_rate_per_unit) or self.monthly_rate_per_unit < 0:
            raise ValueError(f"monthly_rate_per_unit for {self.identifier} must be >= 0")

    @property
    def display_name(self) -> str:
        """Label shown to users, e.g. 'Ssd' for 'ssd'."""
        return self.identifier[:1].upper() + self.identifier[1:]


@dataclass(frozen=True)
class PricingCatalog:
    """Read-only rate tables keyed by identifier.

    Entries keep their definition order, which is the order listings
    are returned in.
    """
    instances: Tuple[InstanceSpec, ...]
    storage_classes: Tuple[StorageClass, ...]
    _instance_index: Mapping[str, InstanceSpec] = field(
        init=False, repr=False, compare=False
    )
    _storage_index: Mapping[str, StorageClass] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self):
        """Index entries by identifier, rejecting duplicates."""
        object.__setattr__(self, "instances", tuple(self.instances))
        object.__setattr__(self, "storage_classes", tuple(self.storage_classes))
        object.__setattr__(
            self, "_instance_index", _index(self.instances, "instance type")
        )
        object.__setattr__(
            self, "_storage_index", _index(self.storage_classes, "storage class")
        )

    @classmethod
    def from_specs(
        cls,
        instances: Iterable[InstanceSpec],
        storage_classes: Iterable[StorageClass]
    ) -> "PricingCatalog":
        """Build a catalog from any iterables of specs."""
        return cls(instances=tuple(instances), storage_classes=tuple(storage_classes))

    def lookup_instance(self, instance_type_id: str) -> InstanceSpec:
        """Get the spec for an instance type.

        Raises:
            UnknownInstanceType: If the identifier is not in the catalog
        """
        try:
            return self._instance_index[instance_type_id]
        except (KeyError, TypeError):
            raise UnknownInstanceType(instance_type_id) from None

    def lookup_storage_class(self, storage_type_id: str) -> StorageClass:
        """Get the storage class for an identifier.

        Raises:
            UnknownStorageClass: If the identifier is not in the catalog
        """
        try:
            return self._storage_index[storage_type_id]
        except (KeyError, TypeError):
            raise UnknownStorageClass(storage_type_id) from None

    def list_instances(self) -> Tuple[InstanceSpec, ...]:
        return self.instances

    def list_storage_classes(self) -> Tuple[StorageClass, ...]:
        return self.storage_classes


def _is_real(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _index(entries, kind: str) -> Mapping:
    index = {}
    for entry in entries:
        if entry.identifier in index:
            raise ValueError(f"Duplicate {kind}: {entry.identifier}")
        index[entry.identifier] = entry
    return MappingProxyType(index)


# GCP example rates - fixed, no dynamic fetching
_DEFAULT_INSTANCES = (
    InstanceSpec("e2-standard-2", "E2 Standard (2 vCPU)", 2, 8, 0.067012, 48.25),
    InstanceSpec("e2-standard-4", "E2 Standard (4 vCPU)", 4, 16, 0.134024, 96.50),
    InstanceSpec("n2-standard-2", "N2 Standard (2 vCPU)", 2, 8, 0.097014, 69.85),
    InstanceSpec("n2-standard-4", "N2 Standard (4 vCPU)", 4, 16, 0.194028, 139.70),
)

# Per GB per month
_DEFAULT_STORAGE_CLASSES = (
    StorageClass("standard", 0.02, "Standard persistent disk"),
    StorageClass("ssd", 0.17, "SSD persistent disk"),
    StorageClass("network", 0.12, "Network storage"),
)


def default_catalog() -> PricingCatalog:
    """Return the built-in GCP pricing catalog."""
    return PricingCatalog.from_specs(_DEFAULT_INSTANCES, _DEFAULT_STORAGE_CLASSES)
