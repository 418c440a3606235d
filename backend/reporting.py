import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from .store import LOGO_COLLECTION, ORDER_COLLECTION, DocumentStore, safe_sum


def utcnow() -> datetime:
    # Naive UTC, matching what pymongo hands back for stored dates.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ReportingService:
    """Dashboard totals computed from the orders and logos collections."""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow,
                 logger: Optional[logging.Logger] = None):
        self.store = store
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def totals(self) -> Dict[str, float]:
        with self.store.guard("Error fetching data"):
            total_price = self.store.sum_field(LOGO_COLLECTION, "price")
            total_amount = self.store.sum_field(ORDER_COLLECTION, "totalAmount")
        return {"totalPrice": total_price, "totalAmount": total_amount}

    def sales_by_month(self, year_start: datetime) -> List[float]:
        next_year = year_start.replace(year=year_start.year + 1)
        buckets = [0] * 12
        cursor = self.store.orders.find(
            {"createdAt": {"$gte": year_start, "$lt": next_year}},
            {"createdAt": 1, "totalAmount": 1},
        )
        for order in cursor:
            created_at = order.get("createdAt")
            if not isinstance(created_at, datetime):
                continue
            buckets[created_at.month - 1] += safe_sum(order.get("totalAmount"))
        return buckets

    def sales_stats(self) -> Dict[str, object]:
        now = self.clock()
        week_start = now - timedelta(days=7)
        month_start = datetime(now.year, now.month, 1)
        year_start = datetime(now.year, 1, 1)

        with self.store.guard("Internal server error"):
            total_sales = self.store.sum_field(ORDER_COLLECTION, "totalAmount")
            weekly_sales = self.store.sum_field(
                ORDER_COLLECTION, "totalAmount", {"createdAt": {"$gte": week_start}}
            )
            monthly_sales = self.store.sum_field(
                ORDER_COLLECTION, "totalAmount", {"createdAt": {"$gte": month_start}}
            )
            yearly_sales = self.store.sum_field(
                ORDER_COLLECTION, "totalAmount", {"createdAt": {"$gte": year_start}}
            )
            sales_by_month = self.sales_by_month(year_start)

        return {
            "weeklySales": weekly_sales,
            "monthlySales": monthly_sales,
            "yearlySales": yearly_sales,
            "totalSales": total_sales,
            "salesByMonth": sales_by_month,
        }
