"""Print sizes offered by the shop and their current base prices.

Carts price selections from this list. Orders copy the price at checkout and
never look back, so editing a price here only affects future selections.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from printshop.catalogue.events import PrintSizeAdded, PrintSizeDeactivated, PrintSizeRepriced
from printshop.domain import printshop


@printshop.aggregate
class PrintSize:
    size_code = String(required=True, max_length=20, unique=True)
    display_name = String(required=True, max_length=100)
    base_price = Float(required=True, min_value=0.0)
    is_active = Boolean(default=True)
    sort_order = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, size_code, display_name, base_price, sort_order=0):
        now = datetime.now(UTC)
        size = cls(
            size_code=size_code.strip(),
            display_name=display_name,
            base_price=base_price,
            sort_order=sort_order,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        size.raise_(
            PrintSizeAdded(
                size_code=size.size_code,
                display_name=display_name,
                base_price=base_price,
            )
        )
        return size

    def change_price(self, new_price):
        if new_price < 0:
            raise ValidationError({"base_price": ["Price cannot be negative"]})

        previous_price = self.base_price
        self.base_price = new_price
        self.updated_at = datetime.now(UTC)
        self.raise_(
            PrintSizeRepriced(
                size_code=self.size_code,
                previous_price=previous_price,
                new_price=new_price,
            )
        )

    def deactivate(self):
        if not self.is_active:
            return
        self.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(PrintSizeDeactivated(size_code=self.size_code))


@printshop.repository(part_of=PrintSize)
class PrintSizeRepository:
    def by_code(self, size_code: str) -> PrintSize | None:
        found = self._dao.query.filter(size_code=size_code).all().items
        return found[0] if found else None

    def active(self) -> list[PrintSize]:
        sizes = self._dao.query.filter(is_active=True).all().items
        return sorted(sizes, key=lambda s: (s.sort_order or 0, s.size_code))

    def active_by_code(self) -> dict[str, PrintSize]:
        return {size.size_code: size for size in self.active()}
