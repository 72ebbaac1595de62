"""Repository for the Order aggregate: correlation lookups and owner-scoped listing."""

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.repository(part_of=Order)
class OrderRepository:
    def find_by_number(self, order_number: str) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def find_by_payment_intent(self, payment_intent_id: str) -> Order | None:
        if not payment_intent_id:
            return None
        return self._dao.query.filter(payment_intent_id=payment_intent_id).all().first

    def find_by_checkout_session(self, checkout_session_id: str) -> Order | None:
        if not checkout_session_id:
            return None
        return self._dao.query.filter(checkout_session_id=checkout_session_id).all().first

    def order_number_exists(self, order_number: str) -> bool:
        return self.find_by_number(order_number) is not None

    def list_for_owner(self, owner_id: str, status: str | None = None, page: int = 1, limit: int = 50):
        """Newest-first page of an owner's orders. Returns ``(orders, total)``."""
        filters = {"owner_id": owner_id}
        if status:
            filters["status"] = status

        results = (
            self._dao.query.filter(**filters)
            .order_by("-created_at")
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return results.items, results.total
