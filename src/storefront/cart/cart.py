"""Cart aggregate: the caller's working set of lines, snapshotted into an Order at checkout.

One cart per owner. Lines are keyed by (product, size, color); adding a line
that already exists increments its quantity. The cart is never deleted: order
creation clears it.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.errors import CartItemNotFound

# Only the most recent merge tokens are remembered
MERGE_TOKEN_HISTORY = 20


def _norm(value) -> str:
    return value or ""


@storefront.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    image = String(max_length=1024)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    size = String(max_length=50, default="")
    color = String(max_length=50, default="")
    added_at = DateTime()

    def matches(self, product_id, size=None, color=None) -> bool:
        if str(self.product_id) != str(product_id):
            return False
        if size is not None and _norm(self.size) != _norm(size):
            return False
        if color is not None and _norm(self.color) != _norm(color):
            return False
        return True


@storefront.aggregate
class Cart:
    owner_id = Identifier(required=True, unique=True)
    items = HasMany(CartItem)
    subtotal = Float(default=0.0)
    merge_tokens = Text()  # JSON array of processed guest-merge tokens
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner_id):
        now = datetime.now(UTC)
        return cls(
            owner_id=owner_id,
            subtotal=0.0,
            merge_tokens=json.dumps([]),
            created_at=now,
            updated_at=now,
        )

    def _touch(self):
        self.subtotal = round(sum(item.price * item.quantity for item in self.items), 2)
        self.updated_at = datetime.now(UTC)

    def _find(self, product_id, size=None, color=None):
        return next((i for i in self.items if i.matches(product_id, size, color)), None)

    def _bump(self, item, quantity):
        # Re-attach so the association records the change
        item.quantity += quantity
        self.add_items(item)

    def _new_line(self, product_id, name, image, price, quantity, size, color, now):
        return CartItem(
            product_id=product_id,
            name=name,
            image=image,
            price=price,
            quantity=quantity,
            size=_norm(size),
            color=_norm(color),
            added_at=now,
        )

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, name, image, price, quantity=1, size=None, color=None):
        """Add a line, or increase its quantity if the same product/size/color is present."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = self._find(product_id, _norm(size), _norm(color))
        if existing:
            self._bump(existing, quantity)
        else:
            self.add_items(self._new_line(product_id, name, image, price, quantity, size, color, datetime.now(UTC)))
        self._touch()

    def update_quantity(self, product_id, quantity, size=None, color=None):
        """Set a line's quantity. Zero removes the line."""
        if quantity is None or quantity < 0:
            raise ValidationError({"quantity": ["Quantity must be zero or more"]})

        item = self._find(product_id, size, color)
        if item is None:
            raise CartItemNotFound(str(product_id))

        if quantity == 0:
            self.remove_items(item)
        else:
            item.quantity = quantity
            self.add_items(item)
        self._touch()

    def remove_item(self, product_id, size=None, color=None):
        """Remove every line for the product (narrowed by size/color when given)."""
        for item in [i for i in self.items if i.matches(product_id, size, color)]:
            self.remove_items(item)
        self._touch()

    def clear(self):
        for item in list(self.items):
            self.remove_items(item)
        self.subtotal = 0.0
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Guest cart merge
    # -------------------------------------------------------------------
    def has_merged(self, merge_token) -> bool:
        return bool(merge_token) and merge_token in json.loads(self.merge_tokens or "[]")

    def _remember(self, merge_token):
        tokens = json.loads(self.merge_tokens or "[]")
        tokens.append(merge_token)
        self.merge_tokens = json.dumps(tokens[-MERGE_TOKEN_HISTORY:])

    def merge(self, guest_lines, merge_token=None) -> int:
        """Fold guest lines into this cart using the same matching rule as ``add_item``.

        A merge carrying a token that was already processed does nothing. Without
        a token, merging the same lines twice counts them twice. Returns the
        number of guest lines merged.

        Guest lines are grouped by (product, size, color) first. New lines are
        attached before existing lines are bumped.
        """
        if self.has_merged(merge_token):
            return 0

        grouped: dict[tuple, dict] = {}
        for line in guest_lines:
            quantity = line.get("quantity") or 1
            if quantity < 1:
                raise ValidationError({"quantity": ["Quantity must be at least 1"]})
            key = (str(line["product_id"]), _norm(line.get("size")), _norm(line.get("color")))
            if key in grouped:
                grouped[key]["quantity"] += quantity
            else:
                grouped[key] = {**line, "quantity": quantity}

        now = datetime.now(UTC)
        bumps = []
        for (product_id, size, color), line in grouped.items():
            existing = self._find(product_id, size, color)
            if existing:
                bumps.append((existing, line["quantity"]))
            else:
                self.add_items(
                    self._new_line(
                        line["product_id"],
                        line["name"],
                        line.get("image"),
                        line["price"],
                        line["quantity"],
                        size,
                        color,
                        now,
                    )
                )

        for existing, quantity in bumps:
            self._bump(existing, quantity)

        if merge_token:
            self._remember(merge_token)

        self._touch()
        return len(guest_lines)
