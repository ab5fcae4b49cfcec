"""
Payment gateway for a storefront backed by Cashfree.

Creates orders, verifies payments behind a short-lived result cache and a
per-(caller, order) throttle, and handles signed processor webhooks.
"""

__version__ = "1.0.0"
