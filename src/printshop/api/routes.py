"""FastAPI routes for the printshop: cart, checkout, admin workflow, photos.

Authentication happens upstream; the caller arrives as an ``X-Customer-Id``
or ``X-Admin-Id`` header. Every domain call goes through ``submit`` or
``attempt`` and failures are translated by error kind.
"""

import json
from datetime import datetime

from fastapi import APIRouter, Header, HTTPException, Query
from protean.utils.globals import current_domain

from printshop.api.schemas import (
    AddPrintSizeRequest,
    AddToCartRequest,
    CartTotalResponse,
    ChangePriceRequest,
    CheckoutRequest,
    CompleteOrderRequest,
    CompletionResponse,
    DashboardResponse,
    IdResponse,
    OrderReceiptResponse,
    PurgeResponse,
    RecordPhotoCleanupRequest,
    RegisterPhotoRequest,
    StatusResponse,
    StatusUpdateResponse,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
)
from printshop.cart.cart import ShoppingCart
from printshop.cart.items import AddPhotoToCart, ClearCart, RemoveCartItem, UpdateCartItem
from printshop.cart.pricing import quote_cart_total
from printshop.catalogue.management import AddPrintSize, ChangePrintSizePrice, DeactivatePrintSize
from printshop.catalogue.print_size import PrintSize
from printshop.order.cleanup import RecordOrderPhotoCleanup
from printshop.order.completion import CompleteOrder
from printshop.order.creation import PlaceOrder
from printshop.order.order import Order, OrderStatus
from printshop.order.repository import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from printshop.order.status import UpdateOrderStatus
from printshop.photo.management import DeletePhoto, RecordPhotoPurged, RegisterPhoto
from printshop.photo.photo import Photo
from printshop.shared.errors import ErrorKind
from printshop.shared.outcome import Outcome, attempt, submit

_HTTP_STATUS = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.STATE: 409,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


def unwrap(outcome: Outcome):
    """Return the outcome's value or raise the matching HTTP error."""
    if outcome.ok:
        return outcome.value
    failure = outcome.failure
    raise HTTPException(
        status_code=_HTTP_STATUS[failure.kind],
        detail={"kind": failure.kind.value, "errors": failure.messages},
    )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _cart_view(cart) -> dict:
    summary = cart.summary
    return {
        "cart_id": str(cart.id),
        "items": [
            {
                "item_id": str(item.id),
                "photo_id": str(item.photo_id),
                "photo_filename": item.photo_filename,
                "print_selections": item.selections,
                "photo_total": item.photo_total,
            }
            for item in cart.items
        ],
        "summary": {
            "total_photos": summary.total_photos if summary else 0,
            "total_prints": summary.total_prints if summary else 0,
            "subtotal": summary.subtotal if summary else 0.0,
            "estimated_tax": summary.estimated_tax if summary else 0.0,
            "estimated_total": summary.estimated_total if summary else 0.0,
        },
        "expires_at": _iso(cart.expires_at),
    }


def _order_view(order) -> dict:
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "status": order.status,
        "revision": order.revision,
        "items": [
            {
                "photo_id": str(item.photo_id),
                "photo_filename": item.photo_filename,
                "print_selections": item.selections,
                "photo_total": item.photo_total,
            }
            for item in order.items
        ],
        "pricing": {
            "subtotal": order.pricing.subtotal,
            "tax_rate": order.pricing.tax_rate,
            "tax_amount": order.pricing.tax_amount,
            "total": order.pricing.total,
            "currency": order.pricing.currency,
        },
        "payment": {
            "method": order.payment_method,
            "status": order.payment_status,
            "card_last_four": order.card_last_four,
            "reference_number": order.payment_reference,
            "verified_at": _iso(order.payment_verified_at),
            "verified_by": order.payment_verified_by,
        },
        "fulfillment": {
            "printed_at": _iso(order.printed_at),
            "shipped_at": _iso(order.shipped_at),
            "tracking_number": order.tracking_number,
            "completed_at": _iso(order.completed_at),
            "notes": order.notes,
        },
        "photo_cleanup": {
            "is_completed": bool(order.photos_cleaned_up),
            "photos_deleted": order.photos_deleted or 0,
            "storage_freed": order.storage_freed or 0,
            "cleanup_date": _iso(order.photo_cleanup_date),
        },
        "created_at": _iso(order.created_at),
    }


def _page_view(page) -> dict:
    return {
        "items": [_order_view(order) for order in page.items],
        "total": page.total,
        "page": page.page,
        "page_size": page.page_size,
        "pages": page.pages,
    }


def _photo_view(photo) -> dict:
    return {
        "photo_id": str(photo.id),
        "filename": photo.filename,
        "file_size": photo.file_size,
        "thumbnail_blob_id": photo.thumbnail_blob_id,
        "width": photo.width,
        "height": photo.height,
        "is_ordered": bool(photo.is_ordered),
        "uploaded_at": _iso(photo.uploaded_at),
    }


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("")
async def get_cart(x_customer_id: str = Header()) -> dict:
    cart = unwrap(attempt(current_domain.repository_for(ShoppingCart).for_customer, x_customer_id))
    return _cart_view(cart)


@cart_router.post("/items", status_code=201, response_model=IdResponse)
async def add_to_cart(body: AddToCartRequest, x_customer_id: str = Header()) -> IdResponse:
    fields = dict(
        customer_id=x_customer_id,
        photo_id=body.photo_id,
        print_selections=json.dumps([s.model_dump() for s in body.print_selections]),
    )
    return IdResponse(id=unwrap(submit(AddPhotoToCart, **fields)))


@cart_router.put("/items/{item_id}", response_model=StatusResponse)
async def update_cart_item(item_id: str, body: UpdateCartItemRequest, x_customer_id: str = Header()) -> StatusResponse:
    fields = dict(
        customer_id=x_customer_id,
        item_id=item_id,
        print_selections=json.dumps([s.model_dump() for s in body.print_selections]),
    )
    unwrap(submit(UpdateCartItem, **fields))
    return StatusResponse()


@cart_router.delete("/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(item_id: str, x_customer_id: str = Header()) -> StatusResponse:
    unwrap(submit(RemoveCartItem, customer_id=x_customer_id, item_id=item_id))
    return StatusResponse()


@cart_router.delete("", response_model=StatusResponse)
async def clear_cart(x_customer_id: str = Header()) -> StatusResponse:
    unwrap(submit(ClearCart, customer_id=x_customer_id))
    return StatusResponse()


@cart_router.get("/total", response_model=CartTotalResponse)
async def cart_total(
    state: str = Query(min_length=2, max_length=2), x_customer_id: str = Header()
) -> CartTotalResponse:
    return CartTotalResponse(**unwrap(attempt(quote_cart_total, x_customer_id, state.upper())))


# ---------------------------------------------------------------------------
# Order Router (customer)
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderReceiptResponse)
async def place_order(
    body: CheckoutRequest,
    x_customer_id: str = Header(),
    idempotency_key: str | None = Header(default=None),
) -> OrderReceiptResponse:
    payment = body.payment
    # Only the last four digits cross into the domain; commands are stored
    card_last_four = payment.card_number[-4:] if payment.card_number else None
    fields = dict(
        customer_id=x_customer_id,
        customer_email=body.customer_email,
        customer_name=body.customer_name,
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        payment_method=payment.method,
        card_last_four=card_last_four,
        cardholder_name=payment.cardholder_name,
        preferred_branch=payment.preferred_branch,
        checkout_key=idempotency_key,
    )
    return OrderReceiptResponse(**unwrap(submit(PlaceOrder, **fields)))


@order_router.get("")
async def list_my_orders(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    x_customer_id: str = Header(),
) -> dict:
    repo = current_domain.repository_for(Order)
    return _page_view(unwrap(attempt(repo.page_for_customer, x_customer_id, page, page_size)))


@order_router.get("/{order_id}")
async def get_my_order(order_id: str, x_customer_id: str = Header()) -> dict:
    order = unwrap(attempt(current_domain.repository_for(Order).owned, order_id, x_customer_id))
    return _order_view(order)


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(x_admin_id: str = Header()) -> DashboardResponse:
    return DashboardResponse(**unwrap(attempt(current_domain.repository_for(Order).dashboard)))


@admin_router.get("/orders/completed")
async def list_completed_orders(
    start: datetime = Query(), end: datetime = Query(), x_admin_id: str = Header()
) -> list[dict]:
    orders = unwrap(attempt(current_domain.repository_for(Order).completed_between, start, end))
    return [_order_view(order) for order in orders]


@admin_router.get("/orders")
async def list_orders_by_status(
    status: str = Query(),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    x_admin_id: str = Header(),
) -> dict:
    try:
        wanted = OrderStatus(status)
    except ValueError:
        raise HTTPException(
            status_code=422,
            detail={"kind": ErrorKind.VALIDATION.value, "errors": {"status": [f"Unknown order status: {status}"]}},
        ) from None
    repo = current_domain.repository_for(Order)
    return _page_view(unwrap(attempt(repo.page_by_status, wanted, page, page_size)))


@admin_router.put("/orders/{order_id}/status", response_model=StatusUpdateResponse)
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, x_admin_id: str = Header()
) -> StatusUpdateResponse:
    fields = dict(
        order_id=order_id,
        status=body.status,
        admin_id=x_admin_id,
        notes=body.notes,
        expected_revision=body.expected_revision,
    )
    return StatusUpdateResponse(**unwrap(submit(UpdateOrderStatus, **fields)))


@admin_router.post("/orders/{order_id}/complete", response_model=CompletionResponse)
async def complete_order(order_id: str, body: CompleteOrderRequest, x_admin_id: str = Header()) -> CompletionResponse:
    fields = dict(
        order_id=order_id,
        admin_id=x_admin_id,
        shipped_at=body.shipping_date,
        tracking_number=body.tracking_number,
        notes=body.notes,
        expected_revision=body.expected_revision,
    )
    return CompletionResponse(**unwrap(submit(CompleteOrder, **fields)))


@admin_router.post("/orders/{order_id}/photo-cleanup", response_model=StatusResponse)
async def record_photo_cleanup(
    order_id: str, body: RecordPhotoCleanupRequest, x_admin_id: str = Header()
) -> StatusResponse:
    fields = dict(
        order_id=order_id,
        photos_deleted=body.photos_deleted,
        storage_freed=body.storage_freed,
    )
    unwrap(submit(RecordOrderPhotoCleanup, **fields))
    return StatusResponse()


@admin_router.get("/photo-cleanup")
async def photo_cleanup_queue(before: datetime | None = Query(default=None), x_admin_id: str = Header()) -> list[dict]:
    photos = unwrap(attempt(current_domain.repository_for(Photo).due_for_cleanup, before))
    return [
        {
            "photo_id": str(photo.id),
            "blob_id": photo.blob_id,
            "thumbnail_blob_id": photo.thumbnail_blob_id,
            "file_size": photo.file_size,
            "deletion_scheduled_for": _iso(photo.deletion_scheduled_for),
        }
        for photo in photos
    ]


@admin_router.post("/photo-cleanup/{photo_id}/purged", response_model=PurgeResponse)
async def record_photo_purged(photo_id: str, x_admin_id: str = Header()) -> PurgeResponse:
    freed = unwrap(submit(RecordPhotoPurged, photo_id=photo_id))
    return PurgeResponse(photo_id=photo_id, storage_freed=freed)


# ---------------------------------------------------------------------------
# Photo Router
# ---------------------------------------------------------------------------
photo_router = APIRouter(prefix="/photos", tags=["photos"])


@photo_router.get("")
async def list_my_photos(x_customer_id: str = Header()) -> list[dict]:
    photos = unwrap(attempt(current_domain.repository_for(Photo).for_owner, x_customer_id))
    return [_photo_view(photo) for photo in photos]


@photo_router.post("", status_code=201, response_model=IdResponse)
async def register_photo(body: RegisterPhotoRequest, x_customer_id: str = Header()) -> IdResponse:
    fields = dict(owner_id=x_customer_id, **body.model_dump())
    return IdResponse(id=unwrap(submit(RegisterPhoto, **fields)))


@photo_router.delete("/{photo_id}", response_model=StatusResponse)
async def delete_photo(photo_id: str, x_customer_id: str = Header()) -> StatusResponse:
    unwrap(submit(DeletePhoto, photo_id=photo_id, owner_id=x_customer_id))
    return StatusResponse(status="deleted")


# ---------------------------------------------------------------------------
# Print Size Router
# ---------------------------------------------------------------------------
print_size_router = APIRouter(prefix="/print-sizes", tags=["print-sizes"])


@print_size_router.get("")
async def list_print_sizes() -> list[dict]:
    sizes = unwrap(attempt(current_domain.repository_for(PrintSize).active))
    return [
        {
            "size_code": size.size_code,
            "display_name": size.display_name,
            "base_price": size.base_price,
        }
        for size in sizes
    ]


@print_size_router.post("", status_code=201, response_model=IdResponse)
async def add_print_size(body: AddPrintSizeRequest, x_admin_id: str = Header()) -> IdResponse:
    return IdResponse(id=unwrap(submit(AddPrintSize, **body.model_dump())))


@print_size_router.put("/{size_code}/price", response_model=StatusResponse)
async def change_print_size_price(
    size_code: str, body: ChangePriceRequest, x_admin_id: str = Header()
) -> StatusResponse:
    unwrap(submit(ChangePrintSizePrice, size_code=size_code, base_price=body.base_price))
    return StatusResponse()


@print_size_router.delete("/{size_code}", response_model=StatusResponse)
async def deactivate_print_size(size_code: str, x_admin_id: str = Header()) -> StatusResponse:
    unwrap(submit(DeactivatePrintSize, size_code=size_code))
    return StatusResponse(status="deactivated")
