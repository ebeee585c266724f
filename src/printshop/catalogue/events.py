"""Domain events for the PrintSize aggregate."""

from protean.fields import Float, String

from printshop.domain import printshop


@printshop.event(part_of="PrintSize")
class PrintSizeAdded:
    __version__ = "v1"

    size_code = String(required=True)
    display_name = String(required=True)
    base_price = Float(required=True)


@printshop.event(part_of="PrintSize")
class PrintSizeRepriced:
    """The base price changed. Existing orders keep the price they locked."""

    __version__ = "v1"

    size_code = String(required=True)
    previous_price = Float(required=True)
    new_price = Float(required=True)


@printshop.event(part_of="PrintSize")
class PrintSizeDeactivated:
    __version__ = "v1"

    size_code = String(required=True)
