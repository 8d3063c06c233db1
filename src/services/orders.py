"""
Order lookup by confirmation digits, and order creation.

Confirmation digits are the last four characters of an order id, read back
by the caller to confirm which order is meant. Ambiguous matches are rejected
rather than guessed.
"""

import json
import re
import secrets
from typing import Any, Iterable, Mapping

import structlog

from src.core.exceptions import (
    AmbiguousOrderError,
    InvalidConfirmationDigitsError,
    OrderNotFoundError,
    ProductNotFoundError,
    StoreError,
)
from src.core.identity import Identity
from src.models.domain.records import CustomerRecord, OrderRecord, ProductRecord
from src.schemas.tools import LineItem
from src.services.customers import get_customer, resolve_customer, select_by_identity, utc_now
from src.services.pricing import apply_discount
from src.stores.base import RecordStore, Table

logger = structlog.get_logger(__name__)

CONFIRMATION_LENGTH = 4
ORDER_ID_DIGITS = 6
ORDER_ID_ATTEMPTS = 5
PENDING = "pending"

_NON_ALNUM = re.compile(r"[^0-9A-Za-z]")


def normalize_confirmation_digits(raw: Any) -> str:
    """
    Normalize what the caller read out into four confirmation characters.

    Whitespace and punctuation are dropped and the last four characters kept,
    so "Order # 12-34ab" becomes "34ab". Case is preserved; matching ignores it.

    Raises:
        InvalidConfirmationDigitsError: fewer than four usable characters
    """
    if raw is None:
        raise InvalidConfirmationDigitsError("Missing order confirmation digits")
    cleaned = _NON_ALNUM.sub("", str(raw).strip())
    digits = cleaned[-CONFIRMATION_LENGTH:]
    if len(digits) != CONFIRMATION_LENGTH:
        raise InvalidConfirmationDigitsError(
            "Please provide the last 4 characters of your order number"
        )
    return digits


def match_confirmation_digits(orders: Iterable[Mapping[str, Any]], digits: str) -> OrderRecord:
    """
    Pick the single order whose id ends with ``digits`` (case-insensitive).

    Raises:
        OrderNotFoundError: no order matches
        AmbiguousOrderError: more than one order matches
    """
    suffix = digits.lower()
    candidates = [
        order for order in orders
        if order.get("id") is not None and str(order["id"])[-CONFIRMATION_LENGTH:].lower() == suffix
    ]
    if not candidates:
        raise OrderNotFoundError(f"No order found ending in {digits}")
    if len(candidates) > 1:
        logger.warning("ambiguous_confirmation_digits", digits=digits, match_count=len(candidates))
        raise AmbiguousOrderError(len(candidates))
    return OrderRecord.model_validate(candidates[0])


async def lookup_customer_order(store: RecordStore, identity: Identity, raw_digits: Any) -> OrderRecord:
    """Match confirmation digits against the caller's own orders."""
    digits = normalize_confirmation_digits(raw_digits)
    orders = await select_by_identity(store, Table.ORDERS, identity)
    logger.info("order_lookup", field=identity.field, digits=digits, candidate_count=len(orders))
    return match_confirmation_digits(orders, digits)


async def validate_order_digits(store: RecordStore, raw_digits: Any) -> OrderRecord:
    """Match confirmation digits against every order in the store."""
    digits = normalize_confirmation_digits(raw_digits)
    orders = await store.find_by_suffix(Table.ORDERS, "id", digits)
    logger.info("order_id_validation", digits=digits, candidate_count=len(orders))
    return match_confirmation_digits(orders, digits)


async def generate_order_id(store: RecordStore) -> str:
    """Random six-digit order id not yet used in the store."""
    for _ in range(ORDER_ID_ATTEMPTS):
        order_id = f"{secrets.randbelow(10 ** ORDER_ID_DIGITS):0{ORDER_ID_DIGITS}d}"
        if await store.first(Table.ORDERS, {"id": order_id}) is None:
            return order_id
    raise StoreError("Could not allocate a unique order id")


def _order_fields(
    order_id: str,
    customer: CustomerRecord,
    items: list[dict[str, Any]],
    total_amount: float,
) -> dict[str, Any]:
    return {
        "id": order_id,
        "customer_id": customer.id,
        "email": customer.email,
        "phone": customer.phone,
        "items": json.dumps(items),
        "total_amount": total_amount,
        "shipping_status": PENDING,
        "created_at": utc_now(),
    }


async def place_order(store: RecordStore, identity: Identity, product_id: str) -> dict[str, Any]:
    """
    Order one unit of a product for the calling customer.

    The line item price has the product's current discount applied.

    Raises:
        CustomerNotFoundError: caller is not a known customer
        ProductNotFoundError: product id does not exist
    """
    customer = await resolve_customer(store, identity)

    record = await store.first(Table.PRODUCTS, {"id": product_id})
    if record is None:
        raise ProductNotFoundError(f"No product found with id: {product_id}")
    product = ProductRecord.model_validate(record)
    if product.price is None:
        raise StoreError(f"Product {product_id} has no price")

    final_price = apply_discount(product.price, product.current_discount)
    item = {
        "product_id": product.id,
        "name": product.name,
        "quantity": 1,
        "price": final_price,
        "original_price": product.price,
        "size": product.size,
        "color": product.color,
        "brand": product.brand,
    }

    order_id = await generate_order_id(store)
    order = await store.insert(Table.ORDERS, _order_fields(order_id, customer, [item], final_price))

    logger.info(
        "order_placed",
        order_id=order_id,
        customer_id=customer.id,
        product_id=product.id,
        total_amount=final_price,
    )
    return {
        "order_id": order_id,
        "order_details": {
            "customer_id": customer.id,
            "items": [item],
            "total_amount": final_price,
            "shipping_status": order.get("shipping_status") or PENDING,
        },
    }


async def create_order(
    store: RecordStore,
    customer_id: str,
    items: list[LineItem],
    total_amount: float,
) -> dict[str, Any]:
    """
    Persist an order built by the front end and echo it back with the
    customer's name and shipping address.

    Raises:
        CustomerNotFoundError: customer id does not exist
    """
    customer = await get_customer(store, customer_id)
    line_items = [item.model_dump(exclude_unset=True) for item in items]

    order_id = await generate_order_id(store)
    await store.insert(Table.ORDERS, _order_fields(order_id, customer, line_items, total_amount))

    logger.info(
        "order_created",
        order_id=order_id,
        customer_id=customer.id,
        item_count=len(line_items),
        total_amount=total_amount,
    )
    return {
        "order_id": order_id,
        "order_details": {
            "customer_name": customer.full_name,
            "email": customer.email,
            "shipping_address": customer.shipping_address,
            "items": line_items,
            "total_amount": total_amount,
            "shipping_status": PENDING,
        },
    }
