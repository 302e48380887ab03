import pytest

from checkout_service.errors import InvalidCoupon, InvalidGiftCard
from checkout_service.promotions import (
    COUPONS,
    Coupon,
    PromotionState,
    apply_coupon,
    apply_gift_card,
    normalize_code,
)


class TestNormalize:
    def test_trims_and_uppercases(self):
        assert normalize_code("  save10 ") == "SAVE10"

    def test_none_is_empty(self):
        assert normalize_code(None) == ""


class TestApplyCoupon:
    def test_percentage_coupon(self):
        result = apply_coupon("SAVE10", 1200)
        assert result.discount == 120
        assert result.code == "SAVE10"

    def test_percentage_coupon_is_capped(self):
        assert apply_coupon("SAVE10", 5000).discount == 200

    def test_percentage_coupon_rounds(self):
        assert apply_coupon("save10", 1235).discount == 124

    def test_fixed_coupon(self):
        assert apply_coupon("NEW50", 300).discount == 50

    def test_fixed_coupon_never_exceeds_subtotal(self):
        assert apply_coupon("NEW50", 30).discount == 30

    def test_unknown_coupon(self):
        with pytest.raises(InvalidCoupon) as exc:
            apply_coupon("BOGUS", 300)
        assert exc.value.code == "invalid_coupon"

    def test_minimum_order(self, monkeypatch):
        monkeypatch.setitem(COUPONS, "BIG100", Coupon(code="BIG100", kind="fixed", fixed_amount=100, min_order=1000))
        with pytest.raises(InvalidCoupon):
            apply_coupon("BIG100", 999)
        assert apply_coupon("BIG100", 1000).discount == 100


class TestApplyGiftCard:
    def test_bounded_by_remaining(self):
        result = apply_gift_card("GIFT500", 250)
        assert result.applied == 250
        assert result.balance == 500

    def test_bounded_by_balance(self):
        assert apply_gift_card("GIFT500", 900).applied == 500

    def test_full_cover(self):
        assert apply_gift_card("gift1000", 800).applied == 800

    def test_negative_remaining_applies_nothing(self):
        assert apply_gift_card("GIFT500", -20).applied == 0

    def test_unknown_gift_card(self):
        with pytest.raises(InvalidGiftCard) as exc:
            apply_gift_card("GIFT9999", 100)
        assert exc.value.code == "invalid_gift_card"


class TestPromotionState:
    def test_resolution_does_not_depend_on_entry_order(self):
        coupon_first = PromotionState()
        coupon_first.apply_coupon("NEW50", 300)
        coupon_first.apply_gift_card("GIFT500", 300)

        gift_card_first = PromotionState()
        gift_card_first.apply_gift_card("GIFT500", 300)
        gift_card_first.apply_coupon("NEW50", 300)

        assert coupon_first.resolve(300) == gift_card_first.resolve(300) == (50, 250)

    def test_new_coupon_replaces_previous(self):
        state = PromotionState()
        state.apply_coupon("SAVE10", 1200)
        state.apply_coupon("NEW50", 1200)
        assert state.coupon_code == "NEW50"
        assert state.resolve(1200) == (50, 0)

    def test_new_gift_card_replaces_previous(self):
        state = PromotionState()
        state.apply_gift_card("GIFT500", 2000)
        state.apply_gift_card("GIFT1000", 2000)
        assert state.resolve(2000) == (0, 1000)

    def test_invalid_code_keeps_current_state(self):
        state = PromotionState()
        state.apply_coupon("SAVE10", 1200)
        with pytest.raises(InvalidCoupon):
            state.apply_coupon("NOPE", 1200)
        assert state.coupon_code == "SAVE10"

    def test_removing_coupon_keeps_gift_card(self):
        state = PromotionState()
        state.apply_coupon("NEW50", 300)
        state.apply_gift_card("GIFT500", 300)
        state.remove_coupon()
        assert state.coupon_code is None
        assert state.gift_card_code == "GIFT500"
        assert state.resolve(300) == (0, 300)

    def test_removing_gift_card_keeps_coupon(self):
        state = PromotionState()
        state.apply_coupon("NEW50", 300)
        state.apply_gift_card("GIFT500", 300)
        state.remove_gift_card()
        assert state.resolve(300) == (50, 0)

    def test_empty_code_is_ignored(self):
        state = PromotionState()
        assert state.apply_coupon("   ", 300) is None
        assert state.apply_gift_card("", 300) is None
        assert state.coupon_code is None
        assert state.gift_card_code is None

    @pytest.mark.parametrize("subtotal", [0, 40, 300, 499, 501, 1200, 5000])
    def test_gift_card_bound_holds(self, subtotal):
        state = PromotionState()
        state.apply_coupon("SAVE10", subtotal)
        state.apply_gift_card("GIFT500", subtotal)
        coupon_discount, gift_card_applied = state.resolve(subtotal)
        assert gift_card_applied <= 500
        assert gift_card_applied <= max(0, subtotal - coupon_discount)
