"""
errors.py — Checkout Error Taxonomy

Every failure of a checkout attempt is terminal for that attempt and is
reported to the caller as a CheckoutError subclass. The `code` attribute is
the stable, machine-readable identifier the HTTP layer and clients rely on.
"""


class CheckoutError(Exception):
    """Base class for all checkout failures."""

    code = "checkout_error"

    def __init__(self, message=None):
        self.message = message or self.code
        super().__init__(self.message)

    def to_dict(self):
        return {"code": self.code, "message": self.message}


class ValidationFailed(CheckoutError):
    """
    A precondition of the checkout flow is not met.

    The flow stops before any external call is made; the user is expected to
    correct the input (add an address, add a phone number, switch the payment
    method) and try again.

    Attributes:
        reason (str): Which precondition failed, e.g. 'empty_cart',
            'missing_address', 'missing_contact', 'invalid_amount',
            'gift_card_required', 'insufficient_balance'.
    """

    code = "validation_error"

    def __init__(self, reason, message=None):
        self.reason = reason
        super().__init__(message or reason)

    def to_dict(self):
        data = super().to_dict()
        data["reason"] = self.reason
        return data


class InvalidCoupon(CheckoutError):
    code = "invalid_coupon"


class InvalidGiftCard(CheckoutError):
    code = "invalid_gift_card"


class PaymentCancelled(CheckoutError):
    """The payer closed the gateway checkout. No order is created."""

    code = "payment_cancelled"


class PaymentFailed(CheckoutError):
    """The gateway reported an error other than cancellation. Retryable."""

    code = "payment_failed"


class GatewayUnavailable(CheckoutError):
    """Online payment cannot be used right now; cash on delivery still can."""

    code = "gateway_unavailable"
    fallback = "cod"

    def to_dict(self):
        data = super().to_dict()
        data["fallback"] = self.fallback
        return data


class OrderCreationFailed(CheckoutError):
    code = "order_creation_failed"


class OrderItemsFailed(CheckoutError):
    """Item insertion failed after the order row was written (and then removed)."""

    code = "order_items_failed"


class StoreError(Exception):
    """Raised by store clients when a table operation fails."""

    def __init__(self, table, message, status_code=None):
        self.table = table
        self.status_code = status_code
        super().__init__(f"{table}: {message}")
