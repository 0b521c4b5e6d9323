"""
Remote Order Client: WooCommerce REST v3 over httpx.

Four outbound operations: list orders by status group, read one order, list
products by id set, and set one order's status to completed. Payloads are
validated here so nothing loosely typed reaches the reconciliation engine.
Every call carries the configured timeout; there is no retry.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional, Type

import httpx
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from orderpick.config import PAGE_SIZE, RemoteSettings, load_remote_settings
from orderpick.errors import (
    AuthRejected,
    OrderNotFound,
    UpstreamRejected,
    UpstreamUnavailable,
    ValidationError,
)
from orderpick.schema import StatusFilter
from orderpick.utils import api_root, to_naive_utc, truncate

logger = logging.getLogger(__name__)

# Canonical filter -> remote status list
STATUS_GROUPS = {
    StatusFilter.open: "processing,on-hold",
    StatusFilter.completed: "completed",
}
UNCATEGORIZED = "Uncategorized"


# --- Remote payload models ---
class RawLineItem(BaseModel):
    id: int
    name: str
    product_id: Optional[int] = None
    quantity: int = Field(..., ge=1)
    sku: Optional[str] = None
    total: str = "0"

    @field_validator("product_id")
    @classmethod
    def _zero_is_no_product(cls, v):
        # WooCommerce sends 0 for items not linked to a product
        return v or None

    @field_validator("sku", mode="before")
    @classmethod
    def _blank_sku(cls, v):
        return v or None

    @field_validator("total", mode="before")
    @classmethod
    def _total_as_text(cls, v):
        return "0" if v is None else str(v)


class RawBilling(BaseModel):
    first_name: str = ""
    last_name: str = ""


class RawOrder(BaseModel):
    id: int
    date_created: datetime
    status: str
    total: str = "0"
    billing: RawBilling = Field(default_factory=RawBilling)
    line_items: list[RawLineItem]

    @field_validator("date_created")
    @classmethod
    def _naive_utc(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @field_validator("total", mode="before")
    @classmethod
    def _total_as_text(cls, v):
        return "0" if v is None else str(v)


class OrderStatusSnapshot(BaseModel):
    """Order as echoed by the update call. Only id and status are relied on."""
    id: int
    status: str
    date_created: Optional[datetime] = None
    total: Optional[str] = None

    @field_validator("date_created")
    @classmethod
    def _naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None

    @field_validator("total", mode="before")
    @classmethod
    def _total_as_text(cls, v):
        return None if v is None else str(v)


class RawCategory(BaseModel):
    name: str


class RawImage(BaseModel):
    src: Optional[str] = None


class RawProduct(BaseModel):
    id: int
    categories: list[RawCategory] = Field(default_factory=list)
    images: list[RawImage] = Field(default_factory=list)


@dataclass(frozen=True)
class ProductMetadata:
    """Enrichment for line items that reference a product."""
    category: str
    image_url: Optional[str] = None

    @classmethod
    def from_product(cls, product: RawProduct) -> "ProductMetadata":
        category = product.categories[0].name.strip() if product.categories else ""
        image_url = product.images[0].src if product.images else None
        return cls(category=category or UNCATEGORIZED, image_url=image_url or None)


def _parse_list(payload: Any, model: Type[BaseModel], what: str) -> list:
    if not isinstance(payload, list):
        raise ValidationError(f"Remote {what} response is not a list")
    try:
        return [model.model_validate(entry) for entry in payload]
    except PydanticValidationError as e:
        raise ValidationError(f"Remote {what} payload is malformed: {e.error_count()} invalid field(s)") from e


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return truncate(response.text)
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return truncate(response.text)


class WooCommerceClient:
    """
    Sync client for one store.

    Usage:
        with WooCommerceClient.from_env() as client:
            orders = client.fetch_orders(StatusFilter.open)
    """

    def __init__(self, settings: RemoteSettings, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self._client = httpx.Client(
            base_url=api_root(settings.base_url),
            params={"consumer_key": settings.consumer_key, "consumer_secret": settings.consumer_secret},
            timeout=settings.timeout,
            transport=transport,
        )

    @classmethod
    def from_env(cls, transport: Optional[httpx.BaseTransport] = None) -> "WooCommerceClient":
        """Build from WOO_* variables; raises ConfigMissing if any is absent."""
        return cls(load_remote_settings(), transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        not_found: Type[UpstreamRejected] = UpstreamRejected,
        require_json: bool = True,
        **kwargs,
    ) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("remote_timeout", extra={"method": method, "path": path})
            raise UpstreamUnavailable(
                f"Remote platform timed out after {self.settings.timeout:g}s on {method} {path}"
            ) from e
        except httpx.RequestError as e:
            logger.warning("remote_unreachable", extra={"method": method, "path": path, "error": str(e)})
            raise UpstreamUnavailable(f"Remote platform unreachable on {method} {path}: {e}") from e

        status = response.status_code
        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                if not require_json:
                    return None
                raise ValidationError(f"Remote platform returned a non-JSON body for {method} {path}") from e

        detail = _error_detail(response)
        logger.warning("remote_rejected", extra={"method": method, "path": path, "status": status})
        if status in (401, 403):
            error_cls: Type[UpstreamRejected] = AuthRejected
        elif status == 404:
            error_cls = not_found
        else:
            error_cls = UpstreamRejected
        raise error_cls(
            f"Remote platform rejected {method} {path} with status {status}: {detail}",
            upstream_status=status,
            upstream_body=truncate(response.text),
        )

    def fetch_orders(self, status_filter: StatusFilter) -> list[RawOrder]:
        """
        One page (PAGE_SIZE) of orders in the given status group, newest first.
        Orders beyond the first page are not fetched.
        """
        try:
            status_filter = StatusFilter(status_filter)
        except ValueError:
            raise ValidationError(f"Unknown status filter {status_filter!r}; use 'open' or 'completed'")
        payload = self._request(
            "GET",
            "/orders",
            params={"status": STATUS_GROUPS[status_filter], "per_page": PAGE_SIZE},
        )
        orders = _parse_list(payload, RawOrder, "orders")
        if len(orders) >= PAGE_SIZE:
            logger.info("orders_page_full", extra={"status_filter": status_filter.value, "page_size": PAGE_SIZE})
        logger.info("orders_fetched", extra={"status_filter": status_filter.value, "count": len(orders)})
        return orders

    def fetch_product_metadata(self, product_ids: Iterable[int]) -> dict[int, ProductMetadata]:
        """Category and image per product id, in a single request."""
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        if len(ids) > PAGE_SIZE:
            logger.warning("product_ids_truncated", extra={"requested": len(ids), "page_size": PAGE_SIZE})
            ids = ids[:PAGE_SIZE]
        payload = self._request(
            "GET",
            "/products",
            params={"include": ",".join(str(i) for i in ids), "per_page": PAGE_SIZE},
        )
        products = _parse_list(payload, RawProduct, "products")
        return {p.id: ProductMetadata.from_product(p) for p in products}

    def fetch_order(self, order_id: int) -> RawOrder:
        """One order by id, whatever its status. OrderNotFound if the store does not know it."""
        payload = self._request("GET", f"/orders/{order_id}", not_found=OrderNotFound)
        try:
            return RawOrder.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(f"Remote order {order_id} payload is malformed: {e.error_count()} invalid field(s)") from e

    def set_order_completed(self, order_id: int) -> OrderStatusSnapshot:
        """
        Promote one order to 'completed'. Only the status field is sent.
        A 2xx answer means the update was applied; if its body cannot be read the
        snapshot is rebuilt from the request.
        """
        payload = self._request(
            "PUT",
            f"/orders/{order_id}",
            not_found=OrderNotFound,
            require_json=False,
            json={"status": "completed"},
            timeout=self.settings.timeout,
        )
        try:
            snapshot = OrderStatusSnapshot.model_validate(payload)
        except PydanticValidationError:
            logger.warning("completion_response_unreadable", extra={"order_id": order_id})
            snapshot = OrderStatusSnapshot(id=order_id, status="completed")
        logger.info("order_marked_completed", extra={"order_id": order_id, "status": snapshot.status})
        return snapshot
