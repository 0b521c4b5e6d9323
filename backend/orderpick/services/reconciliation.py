"""
Reconciliation Engine: merges remote orders, product metadata and saved
purchase progress into the order view the operator works from.

Pure functions over already-fetched data. Never writes progress and never
calls the remote platform.
"""
from collections.abc import Iterable, Mapping
from typing import Optional

from orderpick.schema import CategoryGroup, Customer, LineItemView, OrderView, PurchaseStatusOut
from orderpick.services.woo_client import ProductMetadata, RawLineItem, RawOrder

DEFAULT_CATEGORY = "Products"


def progress_map(records: Iterable[PurchaseStatusOut]) -> dict[int, PurchaseStatusOut]:
    """Index progress records by line item id."""
    return {r.line_item_id: r for r in records}


def product_ids(orders: Iterable[RawOrder]) -> set[int]:
    """Unique product ids referenced by any line item."""
    return {item.product_id for order in orders for item in order.line_items if item.product_id}


def resolve_line_item(
    item: RawLineItem,
    metadata: Mapping[int, ProductMetadata],
    saved: Optional[PurchaseStatusOut],
) -> LineItemView:
    """
    Saved progress is copied verbatim; unseen items start at zero.
    Items without resolvable metadata fall back to DEFAULT_CATEGORY and no image.
    """
    meta = metadata.get(item.product_id) if item.product_id else None
    if saved is None:
        quantity_purchased, is_purchased = 0, False
    else:
        quantity_purchased, is_purchased = saved.quantity_purchased, saved.is_purchased
    # quantity edited upstream after progress was saved
    conflict = quantity_purchased > item.quantity or is_purchased != (quantity_purchased == item.quantity)
    return LineItemView(
        id=item.id,
        name=item.name,
        product_id=item.product_id,
        quantity=item.quantity,
        sku=item.sku,
        total=item.total,
        category=(meta.category if meta else "") or DEFAULT_CATEGORY,
        image_url=meta.image_url if meta else None,
        quantity_purchased=quantity_purchased,
        is_purchased=is_purchased,
        progress_conflict=conflict,
    )


def group_by_category(items: Iterable[LineItemView]) -> list[CategoryGroup]:
    """Groups sorted by category name; items keep their remote order inside a group."""
    grouped: dict[str, list[LineItemView]] = {}
    for item in items:
        grouped.setdefault(item.category, []).append(item)
    groups = []
    for category in sorted(grouped):
        members = grouped[category]
        purchased = sum(1 for i in members if i.is_purchased)
        groups.append(
            CategoryGroup(
                category=category,
                items=members,
                purchased_count=purchased,
                total_count=len(members),
                is_complete=purchased == len(members),
            )
        )
    return groups


def is_completable(items: Iterable[LineItemView]) -> bool:
    """True when every item is purchased. An order with no items is completable."""
    return all(i.is_purchased for i in items)


def reconcile_order(
    order: RawOrder,
    metadata: Mapping[int, ProductMetadata],
    saved: Mapping[int, PurchaseStatusOut],
) -> OrderView:
    items = [resolve_line_item(i, metadata, saved.get(i.id)) for i in order.line_items]
    return OrderView(
        id=order.id,
        date_created=order.date_created,
        status=order.status,
        total=order.total,
        customer=Customer(first_name=order.billing.first_name, last_name=order.billing.last_name),
        line_items=items,
        categories=group_by_category(items),
        completable=is_completable(items),
        items_purchased=sum(1 for i in items if i.is_purchased),
        items_total=len(items),
    )


def reconcile(
    orders: Iterable[RawOrder],
    metadata: Optional[Mapping[int, ProductMetadata]],
    saved: Mapping[int, PurchaseStatusOut],
) -> list[OrderView]:
    """
    Build the enriched order list, most recent first (ties: higher id first).
    metadata may be empty or partial when the product fetch degraded.
    """
    metadata = metadata or {}
    views = [reconcile_order(o, metadata, saved) for o in orders]
    views.sort(key=lambda v: (v.date_created, v.id), reverse=True)
    return views
