"""
dispatcher.py — Payment Dispatcher

Validates the checkout preconditions and drives the selected payment path:

    cod      → no external call, payment stays pending
    giftcard → gift card must cover everything, payment is marked paid
    gateway  → create gateway order → open native checkout → paid on success

A gateway problem never results in a paid order. Cancellation, failure and
unavailability are reported as distinct errors so the caller can offer
"try again" or "switch to cash on delivery".
"""

from dataclasses import dataclass
from typing import List, Optional

import httpx

from . import config
from .errors import (
    CheckoutError,
    GatewayUnavailable,
    PaymentFailed,
    ValidationFailed,
)
from .logging_config import get_logger
from .models import (
    AddressSnapshot,
    CartLine,
    CustomerProfile,
    GatewayCheckoutOptions,
    PaymentMethod,
    PaymentStatus,
    PricingSnapshot,
)
from .pricing import to_minor_units

log = get_logger(__name__)


@dataclass
class PaymentOutcome:
    payment_status: PaymentStatus
    payment_id: Optional[str] = None
    session_id: Optional[str] = None


class CheckoutLauncher:
    """
    Opens the gateway's native checkout and waits for the payer.

    Implementations return the gateway's payment id on success and raise
    PaymentCancelled when the payer closes the checkout, PaymentFailed on any
    other gateway error, or GatewayUnavailable when the checkout cannot be
    shown at all.
    """

    def open(self, options: GatewayCheckoutOptions) -> str:
        raise NotImplementedError


class CompletedCheckout(CheckoutLauncher):
    """Launcher for a payment the device has already completed; returns its id."""

    def __init__(self, payment_id: Optional[str]):
        self.payment_id = payment_id

    def open(self, options: GatewayCheckoutOptions) -> str:
        if not self.payment_id:
            raise PaymentFailed("No payment reference received from the gateway checkout.")
        return self.payment_id


class PaymentDispatcher:
    def __init__(self, gateway=None, launcher: CheckoutLauncher = None,
                 currency: str = None, store_name: str = None):
        """
        Args:
            gateway (GatewayClient): Gateway orders API client. Required for the gateway path.
            launcher (CheckoutLauncher): Native checkout opener. Required for the gateway path.
            currency (str): Defaults to config.CHECKOUT_CURRENCY.
            store_name (str): Merchant name shown in the checkout.
        """
        self.gateway = gateway
        self.launcher = launcher
        self.currency = currency or config.CHECKOUT_CURRENCY
        self.store_name = store_name or config.STORE_DISPLAY_NAME

    @staticmethod
    def validate(method: PaymentMethod, cart_lines: List[CartLine], pricing: PricingSnapshot,
                 address: Optional[AddressSnapshot], customer: CustomerProfile):
        """
        Checks the preconditions shared by all payment methods, in a fixed order.

        Raises:
            ValidationFailed: reason one of 'empty_cart', 'missing_address',
                'missing_contact', 'invalid_amount', 'gift_card_required',
                'insufficient_balance'.
        """
        if not cart_lines:
            raise ValidationFailed("empty_cart", "Please add items to your cart before checking out.")

        if address is None:
            raise ValidationFailed("missing_address", "Please add your shipping address before proceeding.")

        if method == PaymentMethod.GATEWAY and (not customer.name or not customer.phone):
            raise ValidationFailed(
                "missing_contact", "Please provide your name and phone number for online payments."
            )

        if method != PaymentMethod.GIFTCARD and pricing.payable <= 0:
            raise ValidationFailed("invalid_amount", "Order total must be greater than zero.")

        if method == PaymentMethod.GIFTCARD:
            if not pricing.gift_card_code:
                raise ValidationFailed("gift_card_required", "Apply a gift card to use this payment method.")
            if pricing.payable > 0:
                raise ValidationFailed(
                    "insufficient_balance", "Gift card balance does not fully cover the order amount."
                )

    def dispatch(self, method, cart_lines: List[CartLine], pricing: PricingSnapshot,
                 address: Optional[AddressSnapshot], customer: CustomerProfile,
                 session_id: str = None, log_prefix: str = "") -> PaymentOutcome:
        """
        Validates the checkout and runs the payment path for `method`.

        Args:
            method (PaymentMethod | str): 'cod', 'giftcard' or 'gateway'.
            session_id (str): Existing gateway order to resume instead of creating a new one.
            log_prefix (str): Prefix identifying the checkout attempt in log lines.

        Returns:
            PaymentOutcome: Payment status and external reference for the order.

        Raises:
            ValidationFailed, PaymentCancelled, PaymentFailed, GatewayUnavailable
        """
        try:
            method = PaymentMethod(method)
        except ValueError:
            raise ValidationFailed("unknown_payment_method", "Please select a payment method to continue.")

        self.validate(method, cart_lines, pricing, address, customer)

        if method == PaymentMethod.COD:
            log.info(f"{log_prefix} Cash on delivery selected, payment stays pending.")
            return PaymentOutcome(payment_status=PaymentStatus.PENDING)

        if method == PaymentMethod.GIFTCARD:
            log.info(f"{log_prefix} Order fully covered by gift card {pricing.gift_card_code}.")
            return PaymentOutcome(
                payment_status=PaymentStatus.PAID,
                payment_id=f"GIFT-{pricing.gift_card_code}",
            )

        return self._pay_with_gateway(pricing, customer, session_id, log_prefix)

    def _pay_with_gateway(self, pricing: PricingSnapshot, customer: CustomerProfile,
                          session_id: Optional[str], log_prefix: str) -> PaymentOutcome:
        if self.gateway is None or self.launcher is None or not self.gateway.is_available:
            log.warning(f"{log_prefix} Online payment not configured.")
            raise GatewayUnavailable("Online payment is not available. Please use Cash on Delivery.")

        amount_minor = to_minor_units(pricing.payable)
        if amount_minor <= 0:
            raise ValidationFailed("invalid_amount", "Order total must be greater than zero.")

        if not session_id:
            try:
                session = self.gateway.create_session(
                    amount_minor,
                    currency=self.currency,
                    notes={"user_id": customer.id or ""},
                )
            except httpx.TransportError as e:
                log.error(f"{log_prefix} Gateway not reachable ({e}).")
                raise GatewayUnavailable("Online payment is not available. Please use Cash on Delivery.")
            except httpx.HTTPStatusError as e:
                log.error(f"{log_prefix} Gateway order creation failed (HTTP {e.response.status_code}).")
                raise PaymentFailed("Failed to create payment order. Please try again.")

            session_id = session.get("id")
            if not session_id:
                raise PaymentFailed("Failed to create payment order. Please try again.")
            log.info(f"{log_prefix} Gateway order {session_id} created for {amount_minor} minor units.")

        options = GatewayCheckoutOptions(
            key=self.gateway.key_id,
            session_id=session_id,
            amount=amount_minor,
            currency=self.currency,
            name=self.store_name,
            description="Order payment",
            payer_name=customer.name,
            payer_email=customer.email,
            payer_contact=customer.phone,
        )

        try:
            payment_id = self.launcher.open(options)
        except CheckoutError as e:
            log.warning(f"{log_prefix} Gateway checkout ended without payment: {e.code}.")
            raise
        except Exception as e:
            log.error(f"{log_prefix} Gateway checkout error: {e}", exc_info=True)
            raise PaymentFailed(str(e) or "Payment failed. Please try again.")

        log.info(f"{log_prefix} Payment {payment_id} captured by gateway.")
        return PaymentOutcome(payment_status=PaymentStatus.PAID, payment_id=payment_id, session_id=session_id)
