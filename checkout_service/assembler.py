"""
assembler.py — Order Assembler

Turns cart lines, the shopper's identity and the resolved pricing into the
rows written to the 'orders' and 'order_items' tables. No side effects; the
records are handed to the committer for persistence.

Identity handling:
    A user id is only stored when it is a canonical UUID. Placeholder values
    and anything else that is not a UUID produce an order without an owner
    (user_id = None) instead of a rejected checkout. Set
    CHECKOUT_REJECT_INVALID_IDENTITY to reject such checkouts instead.
"""

import re
from typing import List, Optional, Tuple

from . import config
from .errors import ValidationFailed
from .logging_config import get_logger
from .models import (
    AddressSnapshot,
    CartLine,
    CustomerProfile,
    OrderItemRecord,
    OrderRecord,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PricingSnapshot,
)

log = get_logger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

IDENTITY_SENTINELS = {"mock-user-id", "-m-n/a", "n/a", "undefined", "null", "none", ""}


def is_valid_uuid(value) -> bool:
    if value is None:
        return False
    return bool(UUID_PATTERN.match(str(value).strip()))


def resolve_user_id(raw_id, reject_invalid: Optional[bool] = None) -> Optional[str]:
    """
    Returns the user id to store on the order, or None.

    Args:
        raw_id: Identity as received from the session, possibly a placeholder.
        reject_invalid (bool): Raise instead of falling back to None.
            Defaults to config.REJECT_INVALID_IDENTITY.

    Raises:
        ValidationFailed: reason 'invalid_identity', only when rejecting is enabled.
    """
    if reject_invalid is None:
        reject_invalid = config.REJECT_INVALID_IDENTITY

    if raw_id is None:
        if reject_invalid:
            raise ValidationFailed("invalid_identity", "Your session is invalid, please log in again.")
        return None

    candidate = str(raw_id).strip()
    if candidate.lower() in IDENTITY_SENTINELS or not is_valid_uuid(candidate):
        if reject_invalid:
            raise ValidationFailed("invalid_identity", "Your session is invalid, please log in again.")
        log.warning(f"Invalid user id {candidate!r}, storing order without owner.")
        return None
    return candidate


def resolve_product_id(raw_id) -> Optional[str]:
    if raw_id is None:
        return None
    candidate = str(raw_id).strip()
    if not is_valid_uuid(candidate):
        log.warning(f"Invalid product id {candidate!r} in cart line, storing item without product reference.")
        return None
    return candidate


def status_for(payment_status: PaymentStatus) -> OrderStatus:
    return OrderStatus.CONFIRMED if PaymentStatus(payment_status) == PaymentStatus.PAID else OrderStatus.PENDING


def shipping_address_text(address: Optional[AddressSnapshot], customer: CustomerProfile) -> str:
    if address is not None:
        return address.display()
    return customer.location or "Not provided"


def build_item(line: CartLine) -> OrderItemRecord:
    return OrderItemRecord(
        product_id=resolve_product_id(line.product_id),
        product_name=line.name or "Unknown Product",
        product_image=line.image,
        quantity=line.quantity,
        unit_price=line.unit_price,
        total_price=round(line.unit_price * line.quantity, 2),
        size=line.size,
        color=line.color,
    )


def assemble_order(
        customer: CustomerProfile,
        cart_lines: List[CartLine],
        pricing: PricingSnapshot,
        payment_method: PaymentMethod,
        payment_status: PaymentStatus,
        payment_id: Optional[str] = None,
        address: Optional[AddressSnapshot] = None,
) -> Tuple[OrderRecord, List[OrderItemRecord]]:
    """
    Builds the order row and its item rows.

    The delivery charge is part of total_amount (the payable) and is also
    recorded on its own in shipping_amount, so that
    total_amount == max(0, subtotal - discount_amount + shipping_amount).

    Returns:
        Tuple[OrderRecord, List[OrderItemRecord]]: Items carry no order_id yet.
    """
    order = OrderRecord(
        user_id=resolve_user_id(customer.id),
        status=status_for(payment_status),
        payment_method=PaymentMethod(payment_method),
        payment_status=PaymentStatus(payment_status),
        payment_id=payment_id or None,
        total_amount=pricing.payable,
        subtotal=pricing.subtotal,
        discount_amount=round(pricing.total_discount, 2),
        shipping_amount=pricing.delivery_charge,
        tax_amount=0.0,
        shipping_address=shipping_address_text(address, customer),
        customer_name=customer.name or "Guest",
        customer_email=customer.email or None,
        customer_phone=customer.phone or None,
    )
    items = [build_item(line) for line in cart_lines]
    return order, items
