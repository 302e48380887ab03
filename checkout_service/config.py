"""
config.py — Environment Configuration for the Checkout Service

All settings are read once from environment variables at import time.
Defaults point at the local mock services so the package works out of the box
in development and tests.
"""

import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Relational store (PostgREST-compatible REST API)
STORE_URL = os.environ.get("STORE_URL", "http://localhost:8002")
STORE_API_KEY = os.environ.get("STORE_API_KEY", "")

# Payment gateway (orders API + native checkout key)
GATEWAY_URL = os.environ.get("GATEWAY_URL", "http://localhost:8001")
RAZORPAY_KEY_ID = os.environ.get("RAZORPAY_KEY_ID", "")
RAZORPAY_KEY_SECRET = os.environ.get("RAZORPAY_KEY_SECRET", "")

CHECKOUT_CURRENCY = os.environ.get("CHECKOUT_CURRENCY", "INR")
STORE_DISPLAY_NAME = os.environ.get("STORE_DISPLAY_NAME", "Storefront")

# Delivery policy: free strictly above the threshold, flat fee otherwise
FREE_DELIVERY_ABOVE = float(os.environ.get("FREE_DELIVERY_ABOVE", "500"))
DELIVERY_FEE = float(os.environ.get("DELIVERY_FEE", "40"))

# When set, orders with an invalid user identity are rejected instead of
# being stored without an owner.
REJECT_INVALID_IDENTITY = _env_bool("CHECKOUT_REJECT_INVALID_IDENTITY")
