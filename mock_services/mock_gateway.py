"""
mock_gateway.py — Mock Implementation of the Payment Gateway Orders API (REST API)

This module provides a simulated payment gateway for testing the checkout workflow.
It exposes a simple FastAPI application that mimics the gateway's order creation endpoint,
which must be called before the native checkout can collect a payment.

Simulation Scenarios:
    • Successful order creation
    • Missing credentials (HTTP 401)
    • Amount below the gateway minimum of 100 minor units (HTTP 400)
    • Rejected order (HTTP 400) for receipts starting with "rcpt_fail_"

Endpoints:
    POST /v1/orders — Creates a gateway order.

Port:
    Default: 8001 (HTTP)
"""

import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel

app = FastAPI(title="Mock Payment Gateway")
logging.basicConfig(level=logging.INFO)

MINIMUM_AMOUNT = 100


class OrderRequest(BaseModel):
    """
    Represents a gateway order request payload.

    Attributes:
        amount (int): Order amount in the smallest currency units (e.g., paise).
        currency (str): ISO 4217 currency code (e.g., 'INR').
        receipt (str): Merchant receipt reference.
        notes (dict): Free-form merchant metadata.
    """
    amount: int
    currency: str
    receipt: Optional[str] = None
    notes: Optional[dict] = None


def _error(status_code: int, description: str) -> JSONResponse:
    return JSONResponse(
        {"error": {"code": "BAD_REQUEST_ERROR", "description": description}},
        status_code=status_code,
    )


@app.post("/v1/orders")
def create_order(request: OrderRequest, authorization: Optional[str] = Header(None)):
    """
    Creates a gateway order.

    Args:
        request (OrderRequest): The order details.
        authorization (str): HTTP basic auth header carrying the merchant key id and secret.

    Returns:
        dict: The created order with id, amount, currency, receipt and status 'created'.
        JSONResponse: {"error": {...}} with 401 if no credentials are sent, or 400 if the
            amount is too small or the receipt requests a rejection.
    """
    if not authorization or not authorization.startswith("Basic "):
        return _error(401, "Authentication failed")

    if request.amount < MINIMUM_AMOUNT:
        logging.warning(f"[GW] Order amount {request.amount} below minimum.")
        return _error(400, "Order amount less than minimum amount allowed")

    if request.receipt and request.receipt.startswith("rcpt_fail_"):
        logging.warning(f"[GW] Order for receipt {request.receipt} rejected.")
        return _error(400, "Order creation rejected")

    order_id = f"order_{uuid.uuid4().hex[:14]}"
    logging.info(f"[GW] Order {order_id} created for {request.amount} {request.currency}.")
    return {
        "id": order_id,
        "entity": "order",
        "amount": request.amount,
        "amount_paid": 0,
        "amount_due": request.amount,
        "currency": request.currency,
        "receipt": request.receipt,
        "status": "created",
        "attempts": 0,
        "notes": request.notes or {},
        "created_at": int(time.time()),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001)
