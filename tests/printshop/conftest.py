import json

import pytest
from protean import current_domain

from printshop.catalogue.management import AddPrintSize
from printshop.tax import reset_tax_lookup, set_tax_lookup
from printshop.tax.fake_adapter import FakeTaxRates

STANDARD_SIZES = [
    {"size_code": "4x6", "display_name": "4x6 Print", "base_price": 0.29, "sort_order": 1},
    {"size_code": "5x7", "display_name": "5x7 Print", "base_price": 0.49, "sort_order": 2},
    {"size_code": "8x10", "display_name": "8x10 Print", "base_price": 2.99, "sort_order": 3},
]

MA_ADDRESS = {
    "full_name": "Ada Lovelace",
    "street_line1": "12 Main St",
    "city": "Boston",
    "state": "MA",
    "postal_code": "02101",
    "country": "USA",
}


@pytest.fixture(scope="session")
def _printshop_domain():
    """Initialize the printshop domain once per session."""
    from printshop.domain import printshop

    printshop.init()
    return printshop


@pytest.fixture(scope="session", autouse=True)
def setup_db(_printshop_domain):
    from printshop.utils.db import drop_db, setup_db

    setup_db(_printshop_domain)

    yield

    drop_db(_printshop_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_printshop_domain):
    """Push domain context before each test, cleanup after."""
    ctx = _printshop_domain.domain_context()
    ctx.push()

    yield

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()


@pytest.fixture(autouse=True)
def tax_rates():
    rates = FakeTaxRates()
    rates.configure(rates={"MA": 0.0625, "NH": 0.0, "NY": 0.04}, default=0.0625)
    set_tax_lookup(rates)
    yield rates
    reset_tax_lookup()


@pytest.fixture()
def print_sizes():
    for size in STANDARD_SIZES:
        current_domain.process(AddPrintSize(**size), asynchronous=False)
    return {size["size_code"]: size for size in STANDARD_SIZES}


@pytest.fixture()
def register_photo():
    from printshop.photo.management import RegisterPhoto

    def _register(owner_id="cust-001", filename="beach.jpg", file_size=2_000_000):
        return current_domain.process(
            RegisterPhoto(
                owner_id=owner_id,
                filename=filename,
                file_size=file_size,
                blob_id=f"blob-{filename}",
                thumbnail_blob_id=f"thumb-{filename}",
            ),
            asynchronous=False,
        )

    return _register


@pytest.fixture()
def fill_cart():
    from printshop.cart.items import AddPhotoToCart

    def _fill(customer_id, photo_id, selections):
        return current_domain.process(
            AddPhotoToCart(
                customer_id=customer_id,
                photo_id=photo_id,
                print_selections=json.dumps(selections),
            ),
            asynchronous=False,
        )

    return _fill


@pytest.fixture()
def checkout():
    from printshop.order.creation import PlaceOrder

    def _checkout(customer_id="cust-001", address=None, checkout_key=None, **payment):
        payment = payment or {
            "payment_method": "credit_card",
            "card_last_four": "4242",
            "cardholder_name": "Ada Lovelace",
        }
        return current_domain.process(
            PlaceOrder(
                customer_id=customer_id,
                customer_email="ada@example.com",
                customer_name="Ada Lovelace",
                shipping_address=json.dumps(address or MA_ADDRESS),
                checkout_key=checkout_key,
                **payment,
            ),
            asynchronous=False,
        )

    return _checkout


@pytest.fixture()
def placed_order(print_sizes, register_photo, fill_cart, checkout):
    """An order for two photos: 10x4x6 + 2x5x7 and 1x8x10. Returns the receipt."""
    first = register_photo(filename="beach.jpg", file_size=2_000_000)
    second = register_photo(filename="hike.jpg", file_size=3_000_000)
    fill_cart("cust-001", first, [{"size_code": "4x6", "quantity": 10}, {"size_code": "5x7", "quantity": 2}])
    fill_cart("cust-001", second, [{"size_code": "8x10", "quantity": 1}])
    return checkout()
