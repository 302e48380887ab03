"""
commit.py — Order Commit & Compensation

Persists an order and its items with two sequential inserts. The store offers
no multi-statement transaction, so a failed item insert is compensated by
deleting the order row that was just written (Saga pattern). An order is
therefore never left visible without its items.
"""

from typing import List

from .errors import OrderCreationFailed, OrderItemsFailed, StoreError
from .logging_config import get_logger
from .models import CommitResult, OrderItemRecord, OrderRecord

log = get_logger(__name__)

ORDERS_TABLE = "orders"
ORDER_ITEMS_TABLE = "order_items"


class OrderCommitter:
    def __init__(self, store):
        """
        Args:
            store: Object with `insert(table, records, returning=None)` and
                `delete(table, filters)`, raising StoreError on failure (e.g. StoreClient).
        """
        self.store = store

    def commit(self, order: OrderRecord, items: List[OrderItemRecord], log_prefix: str = "") -> CommitResult:
        """
        Writes the order, then all of its items in one batch.

        Returns:
            CommitResult: Store-generated id and order number.

        Raises:
            OrderCreationFailed: The order row could not be written. Nothing to compensate.
            OrderItemsFailed: The items could not be written. The order row has been deleted
                (or, if that failed too, logged as CRITICAL for manual clean-up).
        """
        # --- 1. Order row ---
        try:
            rows = self.store.insert(
                ORDERS_TABLE, order.model_dump(mode="json"), returning="id,order_number"
            )
        except StoreError as e:
            log.error(f"{log_prefix} Order creation failed: {e}")
            raise OrderCreationFailed("Failed to create order. Please try again.")

        if not rows or not rows[0].get("id"):
            log.error(f"{log_prefix} Order created but no data returned.")
            raise OrderCreationFailed("Failed to create order. Please try again.")

        order_id = str(rows[0]["id"])
        order_number = str(rows[0].get("order_number") or order_id)
        log.info(f"{log_prefix} Order {order_number} (ID: {order_id}) created.")

        # --- 2. Item rows ---
        payload = [item.model_copy(update={"order_id": order_id}).model_dump(mode="json") for item in items]
        try:
            self.store.insert(ORDER_ITEMS_TABLE, payload)
        except StoreError as e:
            log.error(f"{log_prefix} Order item creation failed: {e}. Starting compensation.")
            self.compensate(order_id, log_prefix)
            raise OrderItemsFailed("Failed to create order items. Please try again.")

        log.info(f"{log_prefix} {len(payload)} order item(s) created.")
        return CommitResult(id=order_id, order_number=order_number)

    def compensate(self, order_id: str, log_prefix: str = ""):
        """Deletes an order whose items could not be written."""
        try:
            self.store.delete(ORDERS_TABLE, {"id": order_id})
            log.info(f"{log_prefix} Compensation successful: order {order_id} deleted.")
        except StoreError as e:
            log.critical(f"{log_prefix} COMPENSATION FAILED: order {order_id} has no items. "
                         f"MANUAL ACTION REQUIRED! {e}")
