"""Order queries used by checkout, the admin workflow and photo retention."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from protean.core.repository import BaseRepository
from protean.exceptions import ObjectNotFoundError, ValidationError

from printshop.domain import printshop
from printshop.order.order import Order, OrderStatus
from printshop.shared.clock import as_naive_utc
from printshop.shared.errors import DuplicateOrderNumber
from printshop.shared.money import money_sum

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _newest_first(orders):
    return sorted(orders, key=lambda o: as_naive_utc(o.created_at) or datetime.min, reverse=True)


@dataclass(frozen=True)
class OrderPage:
    items: list
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size


def paginate(orders: list, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> OrderPage:
    if page < 1:
        raise ValidationError({"page": ["Page must be 1 or greater"]})
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValidationError({"page_size": [f"Page size must be between 1 and {MAX_PAGE_SIZE}"]})
    offset = (page - 1) * page_size
    return OrderPage(items=orders[offset : offset + page_size], total=len(orders), page=page, page_size=page_size)


@printshop.repository(part_of=Order)
class OrderRepository:
    def add(self, order):
        """Persist ``order``. A taken order number is a conflict, not bad input."""
        try:
            return BaseRepository.add(self, order)
        except ValidationError as exc:
            if "order_number" in exc.messages:
                raise DuplicateOrderNumber({"order_number": exc.messages["order_number"]}) from exc
            raise

    def by_number(self, order_number) -> Order | None:
        found = self._dao.query.filter(order_number=order_number).all().items
        return found[0] if found else None

    def by_status(self, status: OrderStatus) -> list[Order]:
        return _newest_first(self._dao.query.filter(status=status.value).all().items)

    def page_by_status(self, status: OrderStatus, page=1, page_size=DEFAULT_PAGE_SIZE) -> OrderPage:
        return paginate(self.by_status(status), page, page_size)

    def for_customer(self, customer_id) -> list[Order]:
        return _newest_first(self._dao.query.filter(customer_id=str(customer_id)).all().items)

    def page_for_customer(self, customer_id, page=1, page_size=DEFAULT_PAGE_SIZE) -> OrderPage:
        return paginate(self.for_customer(customer_id), page, page_size)

    def completed_between(self, start: datetime, end: datetime) -> list[Order]:
        """Orders completed in ``[start, end)``, most recent completion first."""
        start, end = as_naive_utc(start), as_naive_utc(end)
        completed = self._dao.query.filter(status=OrderStatus.COMPLETED.value).all().items
        within = [o for o in completed if o.completed_at and start <= as_naive_utc(o.completed_at) < end]
        return sorted(within, key=lambda o: as_naive_utc(o.completed_at), reverse=True)

    def dashboard(self, now=None) -> dict:
        """Workload counts plus today's completions and their revenue (UTC day)."""
        now = now or datetime.now(UTC)
        day_start = as_naive_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)
        completed_today = self.completed_between(day_start, day_start + timedelta(days=1))
        return {
            "pending_orders": len(self.by_status(OrderStatus.PENDING)),
            "processing_orders": len(self.by_status(OrderStatus.PROCESSING)),
            "completed_today": len(completed_today),
            "revenue_today": money_sum(order.pricing.total for order in completed_today),
        }

    def owned(self, order_id, customer_id) -> Order:
        """Load an order placed by ``customer_id``; anything else is not found."""
        order = self.get(order_id)
        if str(order.customer_id) != str(customer_id):
            raise ObjectNotFoundError({"order_id": ["Order not found"]})
        return order

    def by_checkout_key(self, customer_id, checkout_key) -> Order | None:
        found = self._dao.query.filter(customer_id=str(customer_id), checkout_key=checkout_key).all().items
        return found[0] if found else None

    def order_numbers(self) -> list[str]:
        return [order.order_number for order in self._dao.query.all().items]

    def is_active(self, order_id) -> bool:
        """True while the order can still move, i.e. its photos are still needed."""
        try:
            return not self.get(order_id).is_terminal
        except ObjectNotFoundError:
            return False

    def is_completed(self, order_id) -> bool:
        try:
            return self.get(order_id).status == OrderStatus.COMPLETED.value
        except ObjectNotFoundError:
            return False

    def active_for_photo(self, photo_id) -> list[Order]:
        """Non-terminal orders that include ``photo_id``."""
        orders = self._dao.query.all().items
        return _newest_first(o for o in orders if not o.is_terminal and str(photo_id) in o.photo_ids)
