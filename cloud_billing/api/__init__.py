"""
HTTP API for Cloud Billing.

Serves the pricing catalog, cost calculations and billing history.
"""

from .app import create_app

__all__ = ["create_app"]
