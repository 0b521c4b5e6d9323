"""
API routes: order list, item progress, order completion, completion log.
"""
import logging
from typing import Iterator, Optional

from fastapi import APIRouter, Depends
from fastapi.security import APIKeyHeader

from orderpick.config import operator_token
from orderpick.errors import OperatorUnauthorized
from orderpick.schema import (
    CompletedOrderResponse,
    CompletionLogResponse,
    ErrorResponse,
    ItemStatusUpdate,
    OrderListResponse,
    ProgressListResponse,
    PurchaseStatusOut,
    StatusFilter,
)
from orderpick.services import aggregation, completion, progress_store
from orderpick.services.woo_client import WooCommerceClient
from orderpick.utils import parse_order_id

logger = logging.getLogger(__name__)

# Shared operator credential for every /api route; only enforced when OPERATOR_TOKEN is set
OPERATOR_HEADER = APIKeyHeader(name="X-Operator-Token", auto_error=False)


def require_operator(token: Optional[str] = Depends(OPERATOR_HEADER)) -> None:
    expected = operator_token()
    if expected and token != expected:
        raise OperatorUnauthorized("Missing or invalid X-Operator-Token header")


def get_order_client() -> Iterator[WooCommerceClient]:
    """Dependency that yields a remote client for the request. Raises ConfigMissing if unconfigured."""
    client = WooCommerceClient.from_env()
    try:
        yield client
    finally:
        client.close()


router = APIRouter(
    dependencies=[Depends(require_operator)],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


@router.get("/orders", response_model=OrderListResponse)
def list_orders(status: StatusFilter = StatusFilter.open, client: WooCommerceClient = Depends(get_order_client)):
    """Orders in the status group merged with saved progress, most recent first."""
    orders = aggregation.list_orders(client, status)
    return OrderListResponse(status_filter=status, orders=orders, count=len(orders))


@router.get("/progress", response_model=ProgressListResponse)
def list_progress():
    """All saved line item progress."""
    items = progress_store.read_all()
    return ProgressListResponse(items=items, total=len(items))


@router.post("/item-status", response_model=PurchaseStatusOut)
def set_item_status(req: ItemStatusUpdate, client: WooCommerceClient = Depends(get_order_client)):
    """Create or update progress for one line item, bounded by the remote ordered quantity."""
    return aggregation.set_item_progress(client, req)


@router.post("/orders/{order_id}/complete", response_model=CompletedOrderResponse)
def complete_order(order_id: str, client: WooCommerceClient = Depends(get_order_client)):
    """Mark an open, fully purchased order as completed on the remote platform."""
    snapshot = aggregation.complete(client, parse_order_id(order_id))
    return CompletedOrderResponse(
        id=snapshot.id,
        status=snapshot.status,
        date_created=snapshot.date_created,
        total=snapshot.total,
    )


@router.get("/completions", response_model=CompletionLogResponse)
def list_completions(limit: int = 50):
    """Recent completion attempts for the operator."""
    return CompletionLogResponse(attempts=completion.recent_attempts(limit=max(1, min(limit, 200))))
