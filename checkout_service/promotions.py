"""
promotions.py — Promotion Resolver (coupons and gift cards)

Codes are looked up in a static rule table. Resolution always follows the
same order: the coupon is computed on the subtotal, the gift card is applied
to whatever remains after the coupon. Neither can push the payable amount
below zero and a gift card never applies more than its own balance.
"""

from dataclasses import dataclass
from typing import Optional

from .errors import InvalidCoupon, InvalidGiftCard
from .logging_config import get_logger
from .pricing import round_half_up

log = get_logger(__name__)


@dataclass(frozen=True)
class Coupon:
    code: str
    kind: str  # "percentage" | "fixed"
    rate: float = 0.0
    fixed_amount: float = 0.0
    cap: Optional[float] = None
    min_order: Optional[float] = None

    def discount_for(self, subtotal: float) -> float:
        if self.kind == "percentage":
            discount = round_half_up(subtotal * self.rate)
        else:
            discount = min(self.fixed_amount, subtotal)
        if self.cap is not None:
            discount = min(discount, self.cap)
        return max(0.0, float(discount))


@dataclass(frozen=True)
class GiftCard:
    code: str
    balance: float


COUPONS = {
    "SAVE10": Coupon(code="SAVE10", kind="percentage", rate=0.10, cap=200),
    "NEW50": Coupon(code="NEW50", kind="fixed", fixed_amount=50),
}

GIFT_CARDS = {
    "GIFT500": GiftCard(code="GIFT500", balance=500),
    "GIFT1000": GiftCard(code="GIFT1000", balance=1000),
}


@dataclass(frozen=True)
class CouponResult:
    code: str
    discount: float


@dataclass(frozen=True)
class GiftCardResult:
    code: str
    applied: float
    balance: float


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def apply_coupon(code: str, subtotal: float) -> CouponResult:
    """
    Resolves a coupon code against the subtotal.

    Raises:
        InvalidCoupon: Unknown code, or the subtotal is below the coupon's minimum order.
    """
    normalized = normalize_code(code)
    coupon = COUPONS.get(normalized)
    if coupon is None:
        raise InvalidCoupon("This coupon code is not valid.")
    if coupon.min_order is not None and subtotal < coupon.min_order:
        raise InvalidCoupon(f"This coupon requires a minimum order of {coupon.min_order:g}.")
    return CouponResult(code=normalized, discount=coupon.discount_for(subtotal))


def apply_gift_card(code: str, remaining_after_coupon: float) -> GiftCardResult:
    """
    Resolves a gift card code against what is left to pay after the coupon.

    Raises:
        InvalidGiftCard: Unknown code.
    """
    normalized = normalize_code(code)
    card = GIFT_CARDS.get(normalized)
    if card is None:
        raise InvalidGiftCard("This gift card code is not valid.")
    applied = min(card.balance, max(0.0, remaining_after_coupon))
    return GiftCardResult(code=normalized, applied=float(applied), balance=float(card.balance))


class PromotionState:
    """
    Promotions applied to one checkout session: at most one coupon and one gift card.

    Only the codes are stored. Amounts are re-derived from the current subtotal
    on every resolve(), coupon first, so entering the gift card before the
    coupon ends up with the same payable as the other way round.
    """

    def __init__(self):
        self.coupon_code = None
        self.gift_card_code = None

    def apply_coupon(self, code: str, subtotal: float) -> Optional[CouponResult]:
        if not normalize_code(code):
            return None
        result = apply_coupon(code, subtotal)
        if self.coupon_code and self.coupon_code != result.code:
            log.info(f"Coupon {self.coupon_code} replaced by {result.code}.")
        self.coupon_code = result.code
        return result

    def apply_gift_card(self, code: str, subtotal: float) -> Optional[GiftCardResult]:
        if not normalize_code(code):
            return None
        # Validate the code first so an unknown card leaves the state untouched
        coupon_discount = self.coupon_discount(subtotal)
        result = apply_gift_card(code, max(0.0, subtotal - coupon_discount))
        self.gift_card_code = result.code
        return result

    def remove_coupon(self):
        self.coupon_code = None

    def remove_gift_card(self):
        self.gift_card_code = None

    def coupon_discount(self, subtotal: float) -> float:
        if not self.coupon_code:
            return 0.0
        try:
            return apply_coupon(self.coupon_code, subtotal).discount
        except InvalidCoupon:
            # The cart shrank below the coupon's minimum order since it was applied
            log.info(f"Coupon {self.coupon_code} no longer applies to subtotal {subtotal}.")
            return 0.0

    def resolve(self, subtotal: float):
        """
        Returns (coupon_discount, gift_card_applied) for the given subtotal.

        The gift card amount is bounded by both its balance and
        max(0, subtotal - coupon_discount).
        """
        coupon_discount = self.coupon_discount(subtotal)
        gift_card_applied = 0.0
        if self.gift_card_code:
            gift_card_applied = apply_gift_card(
                self.gift_card_code, max(0.0, subtotal - coupon_discount)
            ).applied
        return coupon_discount, gift_card_applied
