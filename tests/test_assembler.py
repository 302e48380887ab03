import pytest

from checkout_service.assembler import assemble_order, is_valid_uuid, resolve_user_id, status_for
from checkout_service.errors import ValidationFailed
from checkout_service.models import (
    CustomerProfile,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PricingSnapshot,
)
from conftest import PRODUCT_ID, USER_ID, line


def pricing(**overrides):
    values = dict(subtotal=300, coupon_discount=50, gift_card_applied=250, delivery_charge=40, payable=40)
    values.update(overrides)
    return PricingSnapshot(**values)


class TestIdentity:
    def test_valid_uuid(self):
        assert is_valid_uuid(USER_ID)
        assert is_valid_uuid(USER_ID.upper())

    @pytest.mark.parametrize("value", ["", "abc", "3f2b8c1e9a4d4e6b8f1a2c3d4e5f6a7b", USER_ID + "0", None])
    def test_invalid_uuid(self, value):
        assert not is_valid_uuid(value)

    def test_valid_user_id_is_kept(self):
        assert resolve_user_id(f"  {USER_ID} ") == USER_ID

    @pytest.mark.parametrize(
        "raw", ["mock-user-id", "-m-n/a", "-M-N/A", "N/A", "n/a", "undefined", "null", "12345", "user@example.com", None]
    )
    def test_sentinels_and_non_uuids_become_none(self, raw):
        assert resolve_user_id(raw, reject_invalid=False) is None

    def test_rejecting_invalid_identity(self):
        with pytest.raises(ValidationFailed) as exc:
            resolve_user_id("mock-user-id", reject_invalid=True)
        assert exc.value.reason == "invalid_identity"

    def test_reject_flag_read_from_config(self, monkeypatch):
        monkeypatch.setattr("checkout_service.config.REJECT_INVALID_IDENTITY", True)
        with pytest.raises(ValidationFailed):
            resolve_user_id("undefined")


class TestStatus:
    def test_paid_is_confirmed(self):
        assert status_for(PaymentStatus.PAID) == OrderStatus.CONFIRMED

    def test_pending_is_pending(self):
        assert status_for("pending") == OrderStatus.PENDING


class TestAssembleOrder:
    def test_order_record(self, customer, address):
        order, items = assemble_order(
            customer, [line(150, 2)], pricing(), PaymentMethod.COD, PaymentStatus.PENDING, address=address
        )
        assert order.user_id == USER_ID
        assert order.status == OrderStatus.PENDING
        assert order.payment_method == PaymentMethod.COD
        assert order.payment_id is None
        assert order.total_amount == 40
        assert order.subtotal == 300
        assert order.discount_amount == 300
        assert order.shipping_amount == 40
        assert order.tax_amount == 0
        assert "12 MG Road" in order.shipping_address
        assert order.customer_name == "Asha Rao"
        assert len(items) == 1

    def test_total_is_consistent_with_parts(self, customer, address):
        order, _ = assemble_order(customer, [line(1200)], pricing(subtotal=1200, coupon_discount=120,
                                                                  gift_card_applied=0, delivery_charge=0,
                                                                  payable=1080),
                                  "gateway", "paid", payment_id="pay_1", address=address)
        assert order.total_amount == max(0, order.subtotal - order.discount_amount + order.shipping_amount)
        assert order.status == OrderStatus.CONFIRMED
        assert order.payment_id == "pay_1"

    def test_invalid_identity_still_assembles(self, address):
        guest = CustomerProfile(id="mock-user-id")
        order, items = assemble_order(guest, [line(100)], pricing(), "cod", "pending", address=address)
        assert order.user_id is None
        assert order.customer_name == "Guest"
        assert items

    def test_item_records(self, customer, address):
        lines = [
            line(150, 2, size="M", color="Blue", image="shirt.png"),
            line(99.5, 1, product_id="external-sku-42", name=""),
        ]
        _, items = assemble_order(customer, lines, pricing(), "cod", "pending", address=address)
        assert items[0].product_id == PRODUCT_ID
        assert items[0].total_price == 300
        assert items[0].size == "M"
        assert items[0].product_image == "shirt.png"
        assert items[0].order_id is None
        assert items[1].product_id is None
        assert items[1].product_name == "Unknown Product"

    def test_address_falls_back_to_location(self):
        customer = CustomerProfile(id=USER_ID, location="Flat 4, Park Street, Kolkata")
        order, _ = assemble_order(customer, [line(100)], pricing(), "cod", "pending")
        assert order.shipping_address == "Flat 4, Park Street, Kolkata"

    def test_address_not_provided(self):
        order, _ = assemble_order(CustomerProfile(), [line(100)], pricing(), "cod", "pending")
        assert order.shipping_address == "Not provided"
