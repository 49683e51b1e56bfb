"""
Data models for storage layer.

Defines the persisted billing record.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class BillingRecord:
    """Immutable record of one submitted cost calculation.

    Instance specs are copied in at calculation time so the record keeps
    its meaning even if the catalog changes later. Once written, records
    are never modified.
    """
    instance_type_id: str
    vcpu: int
    memory_gib: float
    storage_type_id: str
    storage_size: float
    hours: float
    total_cost: float
    created_at: Optional[datetime] = None
    user_id: Optional[str] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape served over HTTP."""
        return {
            "id": self.id,
            "instanceType": self.instance_type_id,
            "cpu": self.vcpu,
            "memory": self.memory_gib,
            "storageType": self.storage_type_id,
            "storageSize": self.storage_size,
            "hours": self.hours,
            "cost": self.total_cost,
            "date": self.created_at.isoformat() if self.created_at else None,
            "userId": self.user_id,
        }
