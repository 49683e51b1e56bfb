"""
Cloud Billing.

Estimates cloud compute and storage costs from static pricing tables and
keeps a history of every calculation.
"""

__version__ = "0.1.0"
