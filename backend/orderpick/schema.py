"""
Pydantic schemas for API request/response validation.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class StatusFilter(str, Enum):
    """Canonical order groups the operator can list."""
    open = "open"
    completed = "completed"


# --- Progress ---
class ItemStatusUpdate(BaseModel):
    """Request body for POST /item-status. Accepts camelCase keys from older clients."""
    line_item_id: int = Field(..., alias="lineItemId")
    order_id: int = Field(..., alias="orderId")
    is_purchased: bool = Field(..., alias="isPurchased")
    quantity_purchased: int = Field(..., alias="quantityPurchased")

    class Config:
        populate_by_name = True


class PurchaseStatusOut(BaseModel):
    """Stored progress record."""
    line_item_id: int
    order_id: int
    is_purchased: bool
    quantity_purchased: int

    class Config:
        from_attributes = True


class ProgressListResponse(BaseModel):
    """Response for GET /progress."""
    items: list[PurchaseStatusOut]
    total: int


# --- Orders ---
class LineItemView(BaseModel):
    """Line item merged with saved progress and product metadata."""
    id: int
    name: str
    product_id: Optional[int] = None
    quantity: int
    sku: Optional[str] = None
    total: str = "0"
    category: str
    image_url: Optional[str] = None
    quantity_purchased: int = 0
    is_purchased: bool = False
    progress_conflict: bool = False  # saved progress no longer matches the ordered quantity


class CategoryGroup(BaseModel):
    """Items of one order sharing a category."""
    category: str
    items: list[LineItemView]
    purchased_count: int
    total_count: int
    is_complete: bool


class Customer(BaseModel):
    first_name: str = ""
    last_name: str = ""


class OrderView(BaseModel):
    """Enriched order as shown to the operator."""
    id: int
    date_created: datetime
    status: str
    total: str
    customer: Customer
    line_items: list[LineItemView]
    categories: list[CategoryGroup]
    completable: bool
    items_purchased: int
    items_total: int


class OrderListResponse(BaseModel):
    """Response for GET /orders."""
    status_filter: StatusFilter
    orders: list[OrderView]
    count: int


class CompletedOrderResponse(BaseModel):
    """Remote order snapshot after the completion update."""
    id: int
    status: str
    date_created: Optional[datetime] = None
    total: Optional[str] = None


# --- Completion log ---
class CompletionAttempt(BaseModel):
    """One row of the completion log."""
    id: int
    order_id: int
    outcome: str
    response_status: int
    response_body: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CompletionLogResponse(BaseModel):
    """Response for GET /completions."""
    attempts: list[CompletionAttempt]


# --- Errors ---
class ErrorResponse(BaseModel):
    """Body returned for every handled failure."""
    error_code: str
    message: str
    upstream_status: Optional[int] = None
    upstream_body: Optional[str] = None
