"""
Aggregation: per-request orchestration behind the API routes.

list_orders: orders -> (product metadata || saved progress) -> reconcile.
set_item_progress: check one progress write against the remote order, then upsert.
complete: rebuild the open order from fresh data, then run the completion workflow.

Stateless: every call re-reads the remote platform and the store.
"""
import logging
from concurrent.futures import ThreadPoolExecutor

from orderpick.errors import OrderNotFound, UpstreamRejected, UpstreamUnavailable, ValidationError
from orderpick.schema import ItemStatusUpdate, OrderView, PurchaseStatusOut, StatusFilter
from orderpick.services import completion, progress_store
from orderpick.services.reconciliation import product_ids, progress_map, reconcile, reconcile_order
from orderpick.services.woo_client import OrderStatusSnapshot, ProductMetadata, WooCommerceClient

logger = logging.getLogger(__name__)


def _metadata_or_empty(client: WooCommerceClient, ids: set[int]) -> dict[int, ProductMetadata]:
    """Product metadata is enrichment only: upstream failures degrade to defaults."""
    try:
        return client.fetch_product_metadata(ids)
    except (UpstreamUnavailable, UpstreamRejected, ValidationError) as e:
        logger.warning(
            "product_metadata_degraded",
            extra={"product_count": len(ids), "error_code": e.error_code, "error": e.message},
        )
        return {}


def list_orders(client: WooCommerceClient, status_filter: StatusFilter = StatusFilter.open) -> list[OrderView]:
    """
    Enriched orders for one status group.
    Order fetch and progress read failures abort the request; metadata failures do not.
    """
    raw_orders = client.fetch_orders(status_filter)
    ids = product_ids(raw_orders)
    with ThreadPoolExecutor(max_workers=2) as pool:
        saved_future = pool.submit(progress_store.read_all)
        meta_future = pool.submit(_metadata_or_empty, client, ids) if ids else None
        saved = saved_future.result()
        metadata = meta_future.result() if meta_future else {}
    orders = reconcile(raw_orders, metadata, progress_map(saved))
    logger.info(
        "orders_aggregated",
        extra={
            "status_filter": StatusFilter(status_filter).value,
            "count": len(orders),
            "completable": sum(1 for o in orders if o.completable),
        },
    )
    return orders


def validate_item_progress(update: ItemStatusUpdate, quantity: int) -> None:
    """Reject progress writes that would break 0 <= quantity_purchased <= quantity."""
    if update.quantity_purchased < 0:
        raise ValidationError(f"quantity_purchased cannot be negative (got {update.quantity_purchased})")
    if update.quantity_purchased > quantity:
        raise ValidationError(
            f"quantity_purchased {update.quantity_purchased} exceeds ordered quantity {quantity}"
        )
    if update.is_purchased != (update.quantity_purchased == quantity):
        raise ValidationError("is_purchased must be true exactly when quantity_purchased equals quantity")


def ordered_quantity(client: WooCommerceClient, order_id: int, line_item_id: int) -> int:
    """Quantity of one line item as the remote order currently lists it."""
    order = client.fetch_order(order_id)
    item = next((i for i in order.line_items if i.id == line_item_id), None)
    if item is None:
        raise ValidationError(f"Line item {line_item_id} is not part of order #{order_id}")
    return item.quantity


def set_item_progress(client: WooCommerceClient, update: ItemStatusUpdate) -> PurchaseStatusOut:
    """Check the write against the remote order, then persist it."""
    if update.line_item_id <= 0 or update.order_id <= 0:
        raise ValidationError("line_item_id and order_id must be positive integers")
    validate_item_progress(update, ordered_quantity(client, update.order_id, update.line_item_id))
    return progress_store.upsert(
        line_item_id=update.line_item_id,
        order_id=update.order_id,
        is_purchased=update.is_purchased,
        quantity_purchased=update.quantity_purchased,
    )


def open_order_view(client: WooCommerceClient, order_id: int) -> OrderView:
    """Current reconciled state of one open order. Metadata is not needed for the completable check."""
    raw_orders = client.fetch_orders(StatusFilter.open)
    raw = next((o for o in raw_orders if o.id == order_id), None)
    if raw is None:
        raise OrderNotFound(f"Order #{order_id} is not among the open orders")
    return reconcile_order(raw, {}, progress_map(progress_store.read_all()))


def complete(client: WooCommerceClient, order_id: int) -> OrderStatusSnapshot:
    """Complete an open order whose items are all purchased."""
    order = open_order_view(client, order_id)
    return completion.complete_order(order, client)
