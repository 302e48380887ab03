"""
main.py — FastAPI Entry Point for the Checkout Service

This module provides the REST API interface of the storefront checkout.
It acts as the entry point between the shopping app and the checkout workflow
that prices carts, takes payments and writes orders to the store.

Responsibilities:
    • Create payment gateway orders for the app's native checkout
    • Quote cart totals with coupons, gift cards and delivery charges
    • Place orders (cash on delivery, gift card, or a completed gateway payment)
    • Provide system health information
"""

from typing import List, Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .cart import Cart, CheckoutSession
from .clients import GatewayClient, StoreClient
from .dispatcher import CompletedCheckout, PaymentDispatcher
from .errors import (
    CheckoutError,
    GatewayUnavailable,
    InvalidCoupon,
    InvalidGiftCard,
    PaymentCancelled,
    PaymentFailed,
    ValidationFailed,
)
from .logging_config import get_logger, setup_logging
from .models import AddressSnapshot, CartLine, CustomerProfile, PaymentMethod
from .pricing import DeliveryPolicy, round_half_up
from .promotions import PromotionState
from .workflow import process_checkout, quote

# Initialization
# Configure logging and initialize FastAPI app
setup_logging()
log = get_logger(__name__)
app = FastAPI(title="Storefront Checkout Service")

ERROR_STATUS = {
    ValidationFailed: 400,
    InvalidCoupon: 400,
    InvalidGiftCard: 400,
    PaymentFailed: 402,
    PaymentCancelled: 409,
    GatewayUnavailable: 503,
}


class CartItemIn(BaseModel):
    id: str
    name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=1)
    size: Optional[str] = None
    color: Optional[str] = None
    image: Optional[str] = None


class GatewayOrderRequest(BaseModel):
    amount: Optional[float] = None
    currency: str = "INR"
    receipt: Optional[str] = None
    notes: Optional[dict] = None


class QuoteRequest(BaseModel):
    items: List[CartItemIn]
    couponCode: Optional[str] = None
    giftCardCode: Optional[str] = None


class PlaceOrderRequest(BaseModel):
    customer: CustomerProfile
    items: List[CartItemIn]
    address: Optional[AddressSnapshot] = None
    paymentMethod: str
    couponCode: Optional[str] = None
    giftCardCode: Optional[str] = None
    gatewaySessionId: Optional[str] = None
    gatewayPaymentId: Optional[str] = None


# Dependencies (overridable in tests)
def get_store():
    return StoreClient()


def get_gateway():
    return GatewayClient()


def get_delivery_policy():
    return DeliveryPolicy()


def _status_for(error: CheckoutError) -> int:
    return ERROR_STATUS.get(type(error), 500)


def _build_session(items: List[CartItemIn], coupon_code, gift_card_code, customer=None, address=None):
    cart = Cart([CartLine.from_raw(item.model_dump()) for item in items])
    promotions = PromotionState()
    promotions.apply_coupon(coupon_code, cart.subtotal)
    promotions.apply_gift_card(gift_card_code, cart.subtotal)
    return CheckoutSession(cart, customer or CustomerProfile(), address=address, promotions=promotions)


# API Endpoint: App → Gateway order
@app.post("/v1/gateway-orders")
def create_gateway_order(request: GatewayOrderRequest, gateway: GatewayClient = Depends(get_gateway)):
    """
    Creates a gateway order that the app's native checkout is opened against.

    Args:
        request (GatewayOrderRequest): Amount in minor units, currency, optional receipt and notes.

    Returns:
        JSONResponse: {"order": <gateway order>} on success; {"error": ...} with
            400 for a missing or non-positive amount, 500 for gateway errors.
    """
    if not request.amount or request.amount <= 0:
        return JSONResponse({"error": "Invalid amount"}, status_code=400)

    try:
        order = gateway.create_session(
            round_half_up(request.amount),
            currency=request.currency,
            receipt=request.receipt,
            notes=request.notes,
        )
    except ValueError:
        return JSONResponse({"error": "Invalid amount"}, status_code=400)
    except httpx.HTTPStatusError as e:
        try:
            error = e.response.json().get("error")
        except ValueError:
            error = None
        return JSONResponse({"error": error or "Order creation failed"}, status_code=500)
    except httpx.HTTPError as e:
        log.error(f"Gateway order creation failed: {e}")
        return JSONResponse({"error": str(e) or "Unexpected error"}, status_code=500)

    log.info(f"Gateway order {order.get('id')} created ({order.get('amount')} {order.get('currency')}).")
    return {"order": order}


# API Endpoint: App → Pricing
@app.post("/v1/quote")
def quote_cart(request: QuoteRequest, delivery_policy: DeliveryPolicy = Depends(get_delivery_policy)):
    """
    Prices a cart with the given promotion codes.

    Returns:
        dict: The PricingSnapshot fields.

    Raises:
        HTTPException(422): If a coupon or gift card code is not valid.
    """
    try:
        session = _build_session(request.items, request.couponCode, request.giftCardCode)
    except (InvalidCoupon, InvalidGiftCard) as e:
        raise HTTPException(status_code=422, detail=e.to_dict())
    return quote(session, delivery_policy).model_dump()


# API Endpoint: App → Order
@app.post("/v1/orders", status_code=201)
def place_order(
        request: PlaceOrderRequest,
        store: StoreClient = Depends(get_store),
        gateway: GatewayClient = Depends(get_gateway),
        delivery_policy: DeliveryPolicy = Depends(get_delivery_policy),
):
    """
    Places an order for the submitted cart.

    For the gateway method the app has already completed the native checkout:
    `gatewaySessionId` and `gatewayPaymentId` identify the captured payment.

    Returns:
        dict: id, orderNumber, status and paymentStatus of the new order.

    Raises:
        HTTPException: 400 validation / promotions / duplicate payment, 402 payment failed,
            409 payment cancelled, 422 malformed cart lines (negative price, quantity below 1),
            503 gateway unavailable (with fallback 'cod'), 500 order persistence failed.
    """
    try:
        session = _build_session(
            request.items, request.couponCode, request.giftCardCode,
            customer=request.customer, address=request.address,
        )

        if request.paymentMethod == PaymentMethod.GATEWAY.value and not request.gatewaySessionId:
            raise ValidationFailed("missing_payment_reference", "Gateway payments require the gateway order id.")

        dispatcher = PaymentDispatcher(gateway=gateway, launcher=CompletedCheckout(request.gatewayPaymentId))
        result = process_checkout(
            session,
            request.paymentMethod,
            store,
            dispatcher,
            delivery_policy=delivery_policy,
            session_id=request.gatewaySessionId,
        )

    except CheckoutError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.to_dict())

    return {
        "id": result.id,
        "orderNumber": result.order_number,
        "status": result.status.value,
        "paymentStatus": result.payment_status.value,
        "paymentId": result.payment_id,
        "totalAmount": result.pricing.payable,
    }


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}
