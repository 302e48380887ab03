"""
cart.py — Session-scoped Cart State

The cart is owned by a single shopper session and passed explicitly into the
checkout flow. Lines are keyed by product, size and color; adding the same
selection again increases its quantity.
"""

from typing import List, Optional

from .models import CartLine
from .pricing import DeliveryPolicy, compute_subtotal
from .promotions import PromotionState


def _key(product_id, size=None, color=None):
    return (str(product_id), size or None, color or None)


class Cart:
    def __init__(self, lines: Optional[List[CartLine]] = None):
        self.lines: List[CartLine] = []
        for line in lines or []:
            self.add(line)

    def _find(self, product_id, size=None, color=None):
        key = _key(product_id, size, color)
        return next(
            (line for line in self.lines if _key(line.product_id, line.size, line.color) == key),
            None,
        )

    def add(self, line: CartLine):
        """Adds a line, merging it into an existing one with the same product/size/color."""
        existing = self._find(line.product_id, line.size, line.color)
        if existing:
            existing.quantity += line.quantity
        else:
            self.lines.append(line.model_copy())

    def remove(self, product_id, size=None, color=None):
        line = self._find(product_id, size, color)
        if line is not None:
            self.lines.remove(line)

    def update_quantity(self, product_id, quantity: int, size=None, color=None):
        """Sets the quantity of a line; a quantity below 1 removes it."""
        line = self._find(product_id, size, color)
        if line is None:
            return
        if quantity < 1:
            self.lines.remove(line)
        else:
            line.quantity = quantity

    def clear(self):
        self.lines = []

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def subtotal(self) -> float:
        return compute_subtotal(self.lines)

    def preview(self, delivery_policy: DeliveryPolicy = None) -> dict:
        """Totals shown on the cart screen before any promotion is applied."""
        policy = delivery_policy or DeliveryPolicy()
        subtotal = self.subtotal
        delivery_charge = policy.charge_for(subtotal)
        return {
            "subtotal": subtotal,
            "delivery_charge": delivery_charge,
            "total": round(subtotal + delivery_charge, 2),
            "remaining_for_free_delivery": policy.remaining_for_free_delivery(subtotal),
        }


class CheckoutSession:
    """
    Everything one shopper brings to a checkout attempt.

    Attributes:
        cart (Cart): The shopper's cart.
        customer (CustomerProfile): Identity and contact data.
        address (AddressSnapshot | None): Selected delivery address, if any.
        promotions (PromotionState): Applied coupon / gift card codes.
        in_flight (bool): True while a checkout attempt is running.
    """

    def __init__(self, cart, customer, address=None, promotions=None):
        self.cart = cart
        self.customer = customer
        self.address = address
        self.promotions = promotions or PromotionState()
        self.in_flight = False
