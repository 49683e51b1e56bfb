"""
Storage layer for Cloud Billing.

SQLite ledger of billing records.
"""
