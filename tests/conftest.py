import httpx
import pytest

from checkout_service.cart import Cart, CheckoutSession
from checkout_service.errors import StoreError
from checkout_service.models import AddressSnapshot, CartLine, CustomerProfile

USER_ID = "3f2b8c1e-9a4d-4e6b-8f1a-2c3d4e5f6a7b"
PRODUCT_ID = "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d"


class InMemoryStore:
    """Store double with the StoreClient table API and switchable failures."""

    def __init__(self, fail_on=(), fail_delete=False):
        self.tables = {"orders": [], "order_items": [], "user_addresses": []}
        self.fail_on = set(fail_on)
        self.fail_delete = fail_delete
        self.calls = []
        self._counter = 0

    def insert(self, table, records, returning=None):
        self.calls.append(("insert", table))
        if table in self.fail_on:
            raise StoreError(table, "insert failed", status_code=400)
        rows = records if isinstance(records, list) else [records]
        created = []
        for row in rows:
            row = dict(row)
            self._counter += 1
            row.setdefault("id", f"id-{self._counter}")
            if table == "orders":
                row.setdefault("order_number", f"ORD{self._counter:06d}")
            created.append(row)
        self.tables[table].extend(created)
        if not returning:
            return []
        columns = returning.split(",")
        return [{c: r.get(c) for c in columns} for r in created]

    def select(self, table, filters=None, columns="*"):
        self.calls.append(("select", table))
        return [r for r in self.tables[table] if all(r.get(k) == v for k, v in (filters or {}).items())]

    def delete(self, table, filters):
        self.calls.append(("delete", table))
        if self.fail_delete:
            raise StoreError(table, "delete failed", status_code=500)
        self.tables[table] = [
            r for r in self.tables[table] if not all(r.get(k) == v for k, v in filters.items())
        ]

    def fetch_default_address(self, user_id):
        self.calls.append(("select", "user_addresses"))
        rows = [r for r in self.tables["user_addresses"] if r["user_id"] == user_id and r.get("is_default")]
        return AddressSnapshot.model_validate(rows[0]) if rows else None


class FakeGateway:
    """Gateway double recording create_session calls."""

    def __init__(self, key_id="rzp_test_key", key_secret="secret", error=None):
        self.key_id = key_id
        self.key_secret = key_secret
        self.error = error
        self.sessions = []

    @property
    def is_available(self):
        return bool(self.key_id and self.key_secret)

    def create_session(self, amount_minor, currency=None, receipt=None, notes=None):
        if self.error is not None:
            raise self.error
        session = {"id": f"order_{len(self.sessions) + 1}", "amount": amount_minor, "currency": currency}
        self.sessions.append(session)
        return session


class ScriptedLauncher:
    """Native checkout double: returns a payment id or raises the scripted error."""

    def __init__(self, payment_id="pay_123", error=None):
        self.payment_id = payment_id
        self.error = error
        self.opened = []

    def open(self, options):
        self.opened.append(options)
        if self.error is not None:
            raise self.error
        return self.payment_id


def gateway_request():
    return httpx.Request("POST", "http://gateway.test/v1/orders")


def line(price, quantity=1, product_id=PRODUCT_ID, name="Linen Shirt", **extra):
    return CartLine(product_id=product_id, name=name, unit_price=price, quantity=quantity, **extra)


@pytest.fixture
def address():
    return AddressSnapshot(
        full_name="Asha Rao",
        phone="+919876543210",
        street_line1="12 MG Road",
        city="Bengaluru",
        state="Karnataka",
        postal_code="560001",
    )


@pytest.fixture
def customer():
    return CustomerProfile(id=USER_ID, name="Asha Rao", email="asha@example.com", phone="+919876543210")


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def make_session(customer, address):
    def _make(*lines, with_address=True, customer_override=None):
        return CheckoutSession(
            Cart(list(lines)),
            customer_override or customer,
            address=address if with_address else None,
        )

    return _make
