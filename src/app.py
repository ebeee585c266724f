"""Printshop FastAPI application.

Processes commands synchronously over HTTP. Every request runs inside the
printshop domain context with a request id bound to its log events.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from printshop.domain import printshop
from printshop.utils.logging import add_context, clear_context

printshop.init()

app = FastAPI(
    title="Printshop API",
    description="Photo print ordering: carts, checkout, fulfillment and photo retention",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the printshop domain context and tag log events with the request id."""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    add_context(request_id=request_id, path=request.url.path)
    try:
        with printshop.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    response.headers["X-Request-Id"] = request_id
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from printshop.api import (  # noqa: E402
    admin_router,
    cart_router,
    order_router,
    photo_router,
    print_size_router,
)

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(admin_router)
app.include_router(photo_router)
app.include_router(print_size_router)


@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": printshop.name})
