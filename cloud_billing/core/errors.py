"""
Validation errors raised by the cost engine.

All errors derive from ValueError so callers that only care about bad input
can catch them the same way as any other invalid value.
"""

from typing import Any


class CostEngineError(ValueError):
    """Base class for selections the cost engine refuses to price."""
    pass


class UnknownInstanceType(CostEngineError):
    """Raised when an instance type is not in the pricing catalog."""

    def __init__(self, instance_type_id: Any):
        self.instance_type_id = instance_type_id
        super().__init__(f"Invalid instance type: {instance_type_id!r}")


class UnknownStorageClass(CostEngineError):
    """Raised when a storage class is not in the pricing catalog."""

    def __init__(self, storage_type_id: Any):
        self.storage_type_id = storage_type_id
        super().__init__(f"Invalid storage type: {storage_type_id!r}")


class InvalidQuantity(CostEngineError):
    """Raised when a numeric field is missing, negative or not finite."""

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}: {value!r} ({reason})")
