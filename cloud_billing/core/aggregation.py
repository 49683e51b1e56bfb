"""
Historical cost rollups.

Reduces stored billing records into one summary row per instance type.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List

from cloud_billing.storage.models import BillingRecord


@dataclass
class SummaryRow:
    """Totals for every record sharing an instance type."""
    instance_type_id: str
    total_cost: float = 0
    total_hours: float = 0
    total_storage: float = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "instanceType": self.instance_type_id,
            "totalCost": self.total_cost,
            "totalHours": self.total_hours,
            "totalStorage": self.total_storage,
        }


def summarize(records: Iterable[BillingRecord]) -> List[SummaryRow]:
    """Group records by instance type and sum cost, hours and storage.

    Rows come out in the order each instance type first appears. Records are
    trusted as stored: instance types no longer in the catalog still get
    their own row.

    Args:
        records: Billing records, typically everything in the ledger

    Returns:
        One SummaryRow per distinct instance type (empty for no records)
    """
    groups: Dict[str, SummaryRow] = {}
    for record in records:
        row = groups.get(record.instance_type_id)
        if row is None:
            row = groups[record.instance_type_id] = SummaryRow(record.instance_type_id)
        row.total_cost += record.total_cost
        row.total_hours += record.hours
        row.total_storage += record.storage_size
    return list(groups.values())
