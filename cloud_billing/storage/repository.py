"""
Repository pattern for data access.

Handles the append-only billing ledger in SQLite.
"""

from datetime import datetime, timezone
from dataclasses import replace
from typing import List, Optional

from .db import DEFAULT_DB_PATH, get_connection
from .models import BillingRecord

_COLUMNS = (
    "id, instance_type, cpu, memory, storage_type, storage_size, "
    "hours, cost, created_at, user_id"
)


class BillingRepository:
    """Repository for storing and reading billing records.

    Each call opens its own connection, so one repository can be shared
    between callers without coordination.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def initialize(self) -> None:
        initialize_schema(self.db_path)

    def insert(self, record: BillingRecord) -> BillingRecord:
        """Store a record and return it with its generated id and timestamp."""
        return insert_billing_record(record, self.db_path)

    def list_all(self) -> List[BillingRecord]:
        """Return every stored record in insertion order."""
        return fetch_billing_records(db_path=self.db_path)

    def find(
        self,
        instance_type_id: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> List[BillingRecord]:
        """Return stored records matching the given filters, oldest first."""
        return fetch_billing_records(
            instance_type_id=instance_type_id,
            user_id=user_id,
            db_path=self.db_path
        )


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the billing_record table if it doesn't exist.

    This is an append-only ledger. No UPDATE or DELETE operations should
    ever be performed on this table.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS billing_record (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                instance_type TEXT NOT NULL,
                cpu INTEGER NOT NULL,
                memory REAL NOT NULL,
                storage_type TEXT NOT NULL,
                storage_size REAL NOT NULL,
                hours REAL NOT NULL,
                cost REAL NOT NULL,
                created_at TEXT NOT NULL,
                user_id TEXT
            )
        """)
        conn.commit()
    finally:
        conn.close()


def insert_billing_record(
    record: BillingRecord,
    db_path: str = DEFAULT_DB_PATH
) -> BillingRecord:
    """Insert a single billing record into the ledger.

    Records without a timestamp are stamped with the current UTC time.

    Args:
        record: The calculation to record
        db_path: Path to SQLite database file

    Returns:
        The stored record, carrying its generated id
    """
    created_at = record.created_at or datetime.now(timezone.utc)
    conn = get_connection(db_path)
    try:
        cursor = conn.execute("""
            INSERT INTO billing_record
            (instance_type, cpu, memory, storage_type, storage_size,
             hours, cost, created_at, user_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            record.instance_type_id,
            record.vcpu,
            record.memory_gib,
            record.storage_type_id,
            record.storage_size,
            record.hours,
            record.total_cost,
            created_at.isoformat(),
            record.user_id
        ))
        conn.commit()
        return replace(record, id=cursor.lastrowid, created_at=created_at)
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetch_billing_records(
    instance_type_id: Optional[str] = None,
    user_id: Optional[str] = None,
    db_path: str = DEFAULT_DB_PATH
) -> List[BillingRecord]:
    """Fetch billing records, optionally filtered by instance type and user.

    Returns records oldest first. This is a read-only operation.

    Args:
        instance_type_id: Optional filter for one instance type
        user_id: Optional filter for one user
        db_path: Path to SQLite database file

    Returns:
        List of billing records in insertion order
    """
    conn = get_connection(db_path)
    try:
        query = f"SELECT {_COLUMNS} FROM billing_record"
        params = []
        conditions = []

        if instance_type_id:
            conditions.append("instance_type = ?")
            params.append(instance_type_id)
        if user_id:
            conditions.append("user_id = ?")
            params.append(user_id)

        if conditions:
            query += " WHERE " + " AND ".join(conditions)

        query += " ORDER BY id ASC"

        cursor = conn.execute(query, params)
        return [_row_to_record(row) for row in cursor.fetchall()]
    finally:
        conn.close()


def _row_to_record(row) -> BillingRecord:
    return BillingRecord(
        id=row[0],
        instance_type_id=row[1],
        vcpu=row[2],
        memory_gib=row[3],
        storage_type_id=row[4],
        storage_size=row[5],
        hours=row[6],
        total_cost=row[7],
        created_at=datetime.fromisoformat(row[8]),
        user_id=row[9]
    )
