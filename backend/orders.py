import logging
from typing import Dict, Optional

from .errors import NotFoundError, ValidationError
from .schemas import ORDER_STATUS_COMPLETE
from .store import DocumentStore, parse_object_id


class OrderService:
    """Read access to orders and the single transition to ``complete``.

    Orders are created by the checkout flow elsewhere; nothing here inserts or
    deletes them.
    """

    def __init__(self, store: DocumentStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _order_id(order_id):
        object_id = parse_object_id(order_id)
        if object_id is None:
            raise ValidationError("Invalid order ID format")
        return object_id

    def list_orders(self):
        with self.store.guard("Internal server error"):
            return list(self.store.orders.find({}))

    def get_order(self, order_id) -> Dict[str, object]:
        object_id = self._order_id(order_id)

        with self.store.guard("Internal server error"):
            order = self.store.orders.find_one({"_id": object_id})

        if not order:
            raise NotFoundError("Order not found")
        return {"id": str(order["_id"]), "status": order.get("status")}

    def complete_order(self, order_id):
        object_id = self._order_id(order_id)

        with self.store.guard("Internal server error"):
            result = self.store.orders.update_one(
                {"_id": object_id}, {"$set": {"status": ORDER_STATUS_COMPLETE}}
            )

        if result.matched_count == 0:
            raise NotFoundError("Order not found")
        self.logger.info("Order %s marked %s", object_id, ORDER_STATUS_COMPLETE)
