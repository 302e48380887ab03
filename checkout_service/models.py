"""
models.py — Data Models for Checkout and Order Assembly

This module defines the data structures used across the checkout flow.
It uses Pydantic models to ensure type safety and automatic validation of the
data handed between pricing, assembly, payment and persistence.

Models:
    - CartLine: One product/variant selection in the cart.
    - PricingSnapshot: Derived totals for a cart and its promotions.
    - AddressSnapshot: Delivery address captured at checkout time.
    - CustomerProfile: Contact data of the person checking out.
    - OrderRecord / OrderItemRecord: Persistence-ready rows for 'orders' and 'order_items'.
    - CommitResult: Identifiers of a committed order.
    - GatewayCheckoutOptions: Parameters for the gateway's native checkout UI.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class PaymentMethod(str, Enum):
    COD = "cod"
    GIFTCARD = "giftcard"
    GATEWAY = "gateway"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class CartLine(BaseModel):
    """
    Represents a single product selection in the cart.

    Attributes:
        product_id (str): Product identifier. May come from an external catalogue
            and is not guaranteed to be a persisted id.
        name (str): Display name.
        unit_price (float): Price per unit in major currency units. Never negative.
        quantity (int): Number of units. Must be greater than zero.
        size, color, image (Optional[str]): Variant details.
    """
    product_id: str
    name: str = ""
    unit_price: float = Field(0.0, ge=0)
    quantity: int = Field(1, gt=0)
    size: Optional[str] = None
    color: Optional[str] = None
    image: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: dict) -> "CartLine":
        """Builds a line from loosely-typed cart data, defaulting price to 0 and quantity to 1."""
        return cls(
            product_id=str(raw.get("id") or raw.get("product_id") or ""),
            name=raw.get("name") or "",
            unit_price=raw.get("price") or raw.get("unit_price") or 0,
            quantity=raw.get("quantity") or 1,
            size=raw.get("size"),
            color=raw.get("color"),
            image=raw.get("image"),
        )

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


class PricingSnapshot(BaseModel):
    subtotal: float = 0.0
    coupon_discount: float = 0.0
    gift_card_applied: float = 0.0
    delivery_charge: float = 0.0
    payable: float = 0.0
    coupon_code: Optional[str] = None
    gift_card_code: Optional[str] = None

    @property
    def total_discount(self) -> float:
        return self.coupon_discount + self.gift_card_applied


class AddressSnapshot(BaseModel):
    """
    A delivery address captured at checkout time.

    Stored on the order as a denormalized string, not as a reference, so later
    edits to the address book never change where a past order was shipped.
    """
    full_name: Optional[str] = None
    phone: Optional[str] = None
    street_line1: str
    street_line2: Optional[str] = None
    landmark: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: Optional[str] = "India"

    def display(self) -> str:
        parts = [
            self.full_name,
            self.street_line1,
            self.street_line2,
            self.landmark,
            self.city,
            f"{self.state} - {self.postal_code}",
            self.country,
        ]
        return ", ".join(p for p in parts if p)


class CustomerProfile(BaseModel):
    """Contact data of the shopper. `id` is the raw, unvalidated identity."""
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None


class OrderRecord(BaseModel):
    user_id: Optional[str] = None
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_id: Optional[str] = None
    total_amount: float
    subtotal: float
    discount_amount: float = 0.0
    shipping_amount: float = 0.0
    tax_amount: float = 0.0
    shipping_address: str
    customer_name: str = "Guest"
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None


class OrderItemRecord(BaseModel):
    order_id: Optional[str] = None
    product_id: Optional[str] = None
    product_name: str = "Unknown Product"
    product_image: Optional[str] = None
    quantity: int = Field(1, gt=0)
    unit_price: float = 0.0
    total_price: float = 0.0
    size: Optional[str] = None
    color: Optional[str] = None


class CommitResult(BaseModel):
    id: str
    order_number: str


class GatewayCheckoutOptions(BaseModel):
    """
    Everything the gateway's native checkout UI needs to collect a payment.

    Attributes:
        key (str): Public key id of the merchant account.
        session_id (str): Gateway order/session created server-side.
        amount (int): Amount in minor currency units (e.g. paise).
        currency (str): ISO 4217 currency code.
    """
    key: str
    session_id: str
    amount: int = Field(..., gt=0)
    currency: str
    name: str
    description: str
    payer_name: str
    payer_email: Optional[str] = None
    payer_contact: str


class CheckoutResult(BaseModel):
    id: str
    order_number: str
    status: OrderStatus
    payment_status: PaymentStatus
    payment_id: Optional[str] = None
    pricing: PricingSnapshot
    items: List[OrderItemRecord] = []
