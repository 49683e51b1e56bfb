"""
Billing workflow.

Connects the cost engine to the billing ledger: price a selection, record
it, and read history and rollups back.
"""

from typing import List, Optional

from .aggregation import SummaryRow, summarize
from .cost_engine import CostBreakdown, CostEngine, UsageSelection
from .errors import CostEngineError
from .logging import get_logger
from cloud_billing.storage.models import BillingRecord
from cloud_billing.storage.repository import BillingRepository

logger = get_logger(__name__)


class BillingService:
    """Prices and records cost calculations.

    Submissions are validated strictly and never stored unless the engine
    prices them. Previews never fail on bad input.
    """

    def __init__(
        self,
        engine: CostEngine,
        repository: BillingRepository,
        default_user_id: Optional[str] = None
    ):
        self.engine = engine
        self.repository = repository
        self.default_user_id = default_user_id

    def submit(self, selection: UsageSelection, user_id: Optional[str] = None) -> BillingRecord:
        """Price a selection and store the result.

        Args:
            selection: The usage to price
            user_id: Optional free-text owner of the record

        Returns:
            The stored BillingRecord with id and timestamp

        Raises:
            CostEngineError: If the selection cannot be priced (nothing is stored)
            sqlite3.Error: Propagated without modification
        """
        try:
            costs = self.engine.compute_cost(selection)
        except CostEngineError as e:
            logger.warning(f"Rejected calculation: {e}", extra={
                "instance_type": selection.instance_type_id,
                "storage_type": selection.storage_type_id,
            })
            raise

        instance = self.engine.catalog.lookup_instance(selection.instance_type_id)
        record = BillingRecord(
            instance_type_id=selection.instance_type_id,
            vcpu=instance.vcpu,
            memory_gib=instance.memory_gib,
            storage_type_id=selection.storage_type_id,
            storage_size=selection.storage_size,
            hours=selection.hours,
            total_cost=costs.total_cost,
            user_id=user_id or self.default_user_id
        )
        stored = self.repository.insert(record)

        logger.info(f"Recorded calculation {stored.id}: {stored.total_cost}", extra={
            "record_id": stored.id,
            "instance_type": stored.instance_type_id,
            "storage_type": stored.storage_type_id,
            "user_id": stored.user_id,
            "cost": stored.total_cost,
        })
        return stored

    def preview(self, selection: UsageSelection) -> CostBreakdown:
        return self.engine.preview_cost(selection)

    def history(
        self,
        instance_type_id: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> List[BillingRecord]:
        """Stored records, oldest first, optionally narrowed to one type or owner."""
        return self.repository.find(instance_type_id=instance_type_id, user_id=user_id)

    def summary(self) -> List[SummaryRow]:
        """Roll up every stored record by instance type."""
        return summarize(self.repository.list_all())
