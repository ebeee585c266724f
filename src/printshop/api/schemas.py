"""Pydantic request/response schemas for the printshop API.

These are the external contracts, kept separate from the Protean commands.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class PrintSelectionSchema(BaseModel):
    size_code: str
    quantity: int = Field(ge=1)


class ShippingAddressSchema(BaseModel):
    full_name: str
    street_line1: str
    street_line2: str | None = None
    city: str
    state: str = Field(min_length=2, max_length=2)
    postal_code: str
    country: str = "USA"
    phone: str | None = None


class PaymentSchema(BaseModel):
    method: Literal["credit_card", "branch_payment"]
    card_number: str | None = Field(default=None, min_length=12, max_length=19)
    cardholder_name: str | None = None
    preferred_branch: str | None = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    photo_id: str
    print_selections: list[PrintSelectionSchema] = Field(min_length=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "photo_id": "3f1c0a9e-7d64-4c56-9a53-0c2a1f3a9b11",
                    "print_selections": [
                        {"size_code": "4x6", "quantity": 10},
                        {"size_code": "5x7", "quantity": 2},
                    ],
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    print_selections: list[PrintSelectionSchema]


class CheckoutRequest(BaseModel):
    customer_email: str | None = None
    customer_name: str | None = None
    shipping_address: ShippingAddressSchema
    payment: PaymentSchema


class UpdateOrderStatusRequest(BaseModel):
    status: str
    notes: str | None = None
    expected_revision: int | None = None


class CompleteOrderRequest(BaseModel):
    shipping_date: datetime | None = None
    tracking_number: str | None = None
    notes: str | None = None
    expected_revision: int | None = None


class RecordPhotoCleanupRequest(BaseModel):
    photos_deleted: int = Field(ge=0)
    storage_freed: int = Field(ge=0)


class RegisterPhotoRequest(BaseModel):
    filename: str
    file_size: int = Field(ge=0)
    blob_id: str | None = None
    thumbnail_blob_id: str | None = None
    width: int | None = None
    height: int | None = None


class AddPrintSizeRequest(BaseModel):
    size_code: str
    display_name: str
    base_price: float = Field(ge=0)
    sort_order: int = 0


class ChangePriceRequest(BaseModel):
    base_price: float = Field(ge=0)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class IdResponse(BaseModel):
    id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class CartTotalResponse(BaseModel):
    state: str
    subtotal: float
    tax_rate: float
    tax_amount: float
    total: float


class OrderReceiptResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    subtotal: float
    tax_rate: float
    tax_amount: float
    total: float
    payment_method: str
    payment_status: str
    payment_reference: str | None = None
    created_at: str | None = None


class StatusUpdateResponse(BaseModel):
    order_id: str
    status: str
    revision: int
    photos_scheduled_for_deletion: int | None = None
    photos_retained: int | None = None
    deletion_scheduled_for: str | None = None
    estimated_storage_to_free: int | None = None


class CompletionResponse(BaseModel):
    order_id: str
    status: str
    revision: int
    photos_scheduled_for_deletion: int
    photos_retained: int
    deletion_scheduled_for: str
    estimated_storage_to_free: int


class PurgeResponse(BaseModel):
    photo_id: str
    storage_freed: int


class DashboardResponse(BaseModel):
    pending_orders: int
    processing_orders: int
    completed_today: int
    revenue_today: float
