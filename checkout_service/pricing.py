"""
pricing.py — Pricing Calculator

Pure functions turning cart lines and already-resolved promotion amounts into
a PricingSnapshot. No side effects and no error conditions: callers filter
malformed input (see CartLine.from_raw) before calling.
"""

import math
from typing import Iterable

from . import config
from .models import CartLine, PricingSnapshot


def round_half_up(value: float) -> int:
    """Rounds to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def to_minor_units(amount: float) -> int:
    """Converts a major-unit amount (e.g. 149.99 INR) to minor units (14999 paise)."""
    return round_half_up(amount * 100)


class DeliveryPolicy:
    """
    Flat-fee delivery with a free-delivery threshold.

    Delivery is free when the subtotal is strictly above `free_above`,
    otherwise `flat_fee` is charged. The cart preview and the checkout both go
    through the same policy instance so they cannot disagree.
    """

    def __init__(self, free_above: float = None, flat_fee: float = None):
        self.free_above = config.FREE_DELIVERY_ABOVE if free_above is None else free_above
        self.flat_fee = config.DELIVERY_FEE if flat_fee is None else flat_fee

    def charge_for(self, subtotal: float) -> float:
        if subtotal <= 0:
            return 0.0
        return 0.0 if subtotal > self.free_above else float(self.flat_fee)

    def remaining_for_free_delivery(self, subtotal: float) -> float:
        """How much more must be added to the cart to qualify for free delivery."""
        if subtotal > self.free_above:
            return 0.0
        return round(self.free_above - subtotal, 2)


def compute_subtotal(cart_lines: Iterable[CartLine]) -> float:
    return round(sum(line.unit_price * line.quantity for line in cart_lines), 2)


def compute_totals(
        cart_lines: Iterable[CartLine],
        coupon_discount: float = 0.0,
        gift_card_applied: float = 0.0,
        delivery_policy: DeliveryPolicy = None,
        coupon_code: str = None,
        gift_card_code: str = None,
) -> PricingSnapshot:
    """
    Computes subtotal, delivery charge and payable total for a cart.

    Args:
        cart_lines (Iterable[CartLine]): Lines with quantity >= 1 and unit_price >= 0.
        coupon_discount (float): Resolved coupon discount (>= 0).
        gift_card_applied (float): Resolved gift card amount (>= 0).
        delivery_policy (DeliveryPolicy): Policy deciding the delivery charge.
        coupon_code, gift_card_code (str): Codes behind the amounts, carried for reference.

    Returns:
        PricingSnapshot: payable = max(0, subtotal - coupon - gift card + delivery).
    """
    policy = delivery_policy or DeliveryPolicy()
    subtotal = compute_subtotal(cart_lines)
    delivery_charge = policy.charge_for(subtotal)
    payable = max(0.0, subtotal - coupon_discount - gift_card_applied + delivery_charge)

    return PricingSnapshot(
        subtotal=subtotal,
        coupon_discount=round(coupon_discount, 2),
        gift_card_applied=round(gift_card_applied, 2),
        delivery_charge=delivery_charge,
        payable=round(payable, 2),
        coupon_code=coupon_code,
        gift_card_code=gift_card_code,
    )
