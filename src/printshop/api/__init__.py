"""Printshop HTTP API package."""

from printshop.api.routes import admin_router, cart_router, order_router, photo_router, print_size_router

__all__ = ["cart_router", "order_router", "admin_router", "photo_router", "print_size_router"]
