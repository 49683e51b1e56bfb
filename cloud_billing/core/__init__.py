"""
Core modules for Cloud Billing.

This package contains the pricing catalog, the cost engine and the
aggregation of historical calculations.
"""
