"""
workflow.py — Core Orchestration Logic for Checkout

This module contains the main workflow for placing an order from a shopper's cart.
It coordinates pricing, payment and persistence in the correct sequence.

Workflow Overview:
1. Resolve the delivery address (session address or the user's default address)
2. Price the cart: subtotal, coupon, gift card, delivery charge
3. Dispatch the payment (cash on delivery, gift card or payment gateway)
4. Assemble the order and item records
5. Commit them to the store, compensating if the items cannot be written
6. Clear the cart
"""

import uuid

from pydantic import ValidationError

from .assembler import assemble_order, is_valid_uuid
from .commit import ORDERS_TABLE, OrderCommitter
from .errors import CheckoutError, OrderCreationFailed, StoreError, ValidationFailed
from .logging_config import get_logger
from .models import CheckoutResult, PricingSnapshot
from .pricing import DeliveryPolicy, compute_totals

log = get_logger(__name__)


def quote(session, delivery_policy: DeliveryPolicy = None) -> PricingSnapshot:
    """Prices the session's cart with its currently applied promotions."""
    lines = session.cart.lines
    subtotal = session.cart.subtotal
    coupon_discount, gift_card_applied = session.promotions.resolve(subtotal)
    return compute_totals(
        lines,
        coupon_discount=coupon_discount,
        gift_card_applied=gift_card_applied,
        delivery_policy=delivery_policy,
        coupon_code=session.promotions.coupon_code if coupon_discount else None,
        gift_card_code=session.promotions.gift_card_code,
    )


def resolve_address(session, store, log_prefix: str = ""):
    """
    Returns the session's address, loading the user's default address if none is selected.
    A failed lookup is treated as "no address" so the shopper is asked to add one.
    """
    if session.address is not None:
        return session.address

    user_id = session.customer.id
    if store is None or not hasattr(store, "fetch_default_address") or not is_valid_uuid(user_id):
        return None

    try:
        session.address = store.fetch_default_address(str(user_id).strip())
    except StoreError as e:
        log.warning(f"{log_prefix} Could not load default address: {e}")
        return None
    except ValidationError as e:
        log.warning(f"{log_prefix} Default address is incomplete, ignoring it ({e.error_count()} error(s)).")
        return None
    return session.address


def ensure_payment_unused(store, payment_id: str, log_prefix: str = ""):
    """
    Rejects a gateway payment that is already recorded on an order.

    Raises:
        ValidationFailed('duplicate_payment'): If an order carries `payment_id`.
        OrderCreationFailed: If the store cannot be asked.
    """
    try:
        existing = store.select(ORDERS_TABLE, {"payment_id": payment_id}, columns="id,order_number")
    except StoreError as e:
        log.error(f"{log_prefix} Could not check payment {payment_id} for earlier orders: {e}")
        raise OrderCreationFailed("Could not verify the payment. Please contact support.")

    if existing:
        log.warning(f"{log_prefix} Payment {payment_id} already belongs to order "
                    f"{existing[0].get('order_number')}.")
        raise ValidationFailed("duplicate_payment", "This payment has already been used for an order.")


def process_checkout(session, payment_method, store, dispatcher, delivery_policy: DeliveryPolicy = None,
                     session_id: str = None) -> CheckoutResult:
    """
    Executes the complete checkout for a single shopper session.

    Args:
        session (CheckoutSession): Cart, customer, address and promotions of the shopper.
        payment_method (PaymentMethod | str): 'cod', 'giftcard' or 'gateway'.
        store: Store client used for the default address lookup and the order commit.
        dispatcher (PaymentDispatcher): Runs the payment path.
        delivery_policy (DeliveryPolicy): Delivery charge policy, shared with the cart preview.
        session_id (str): Existing gateway order to resume (gateway path only).

    Returns:
        CheckoutResult: The committed order's id, number and statuses.

    Raises:
        ValidationFailed: A precondition is not met, another attempt is already running,
            or the gateway payment is already recorded on an order.
        PaymentCancelled / PaymentFailed / GatewayUnavailable: The payment did not go through.
        OrderCreationFailed / OrderItemsFailed: Persisting the order failed.

    Workflow Steps:
        Step 1 – Address:
            - Uses the selected address or loads the default one from 'user_addresses'.
        Step 2 – Pricing:
            - Coupon on the subtotal first, gift card on the remainder, delivery on top.
        Step 3 – Payment:
            - No external call for COD and gift card; gateway order + native checkout otherwise.
            - A gateway payment id already stored on an order is rejected.
        Step 4/5 – Order:
            - Assembles and commits order and items; items failing deletes the order again.

    The cart is only cleared after step 5 succeeded. On every failure it is left untouched.
    """
    attempt_id = uuid.uuid4().hex[:8]
    log_prefix = f"[Checkout: {attempt_id}]"

    if session.in_flight:
        log.warning(f"{log_prefix} Rejected: another checkout is already in progress for this session.")
        raise ValidationFailed("checkout_in_progress", "Your order is already being placed.")

    session.in_flight = True
    log.info(f"{log_prefix} Starting checkout ({payment_method}, {session.cart.item_count} item(s)).")

    try:
        # --- 1. Address ---
        address = resolve_address(session, store, log_prefix)

        # --- 2. Pricing ---
        pricing = quote(session, delivery_policy)
        log.info(f"{log_prefix} Priced: subtotal={pricing.subtotal} discount={pricing.total_discount} "
                 f"delivery={pricing.delivery_charge} payable={pricing.payable}")

        # --- 3. Payment ---
        outcome = dispatcher.dispatch(
            payment_method,
            session.cart.lines,
            pricing,
            address,
            session.customer,
            session_id=session_id,
            log_prefix=log_prefix,
        )
        if outcome.session_id and outcome.payment_id:
            ensure_payment_unused(store, outcome.payment_id, log_prefix)

        # --- 4. Assembly ---
        order, items = assemble_order(
            session.customer,
            session.cart.lines,
            pricing,
            payment_method,
            outcome.payment_status,
            payment_id=outcome.payment_id,
            address=address,
        )

        # --- 5. Commit ---
        committed = OrderCommitter(store).commit(order, items, log_prefix)

        # --- 6. Clean-up ---
        session.cart.clear()
        session.promotions.remove_coupon()
        session.promotions.remove_gift_card()

        log.info(f"{log_prefix} Checkout completed: order {committed.order_number} ({order.status.value}).")
        return CheckoutResult(
            id=committed.id,
            order_number=committed.order_number,
            status=order.status,
            payment_status=order.payment_status,
            payment_id=order.payment_id,
            pricing=pricing,
            items=[item.model_copy(update={"order_id": committed.id}) for item in items],
        )

    except CheckoutError as e:
        log.warning(f"{log_prefix} Checkout stopped ({e.code}): {e.message}")
        raise

    except Exception as e:
        log.critical(f"{log_prefix} Unexpected error in checkout workflow: {e}", exc_info=True)
        raise

    finally:
        session.in_flight = False
