"""Partition a flat cart into per-seller groups.

Each seller quotes delivery independently, so the cart is split by owning
seller before any delivery rule runs. Groups come out in the order their
seller was first seen in the cart and are immutable: folding a new item in
produces a new group rather than mutating the old one.
"""

from dataclasses import dataclass, replace
from functools import reduce

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from checkout.catalogue.product import Product
from checkout.errors import ProductUnavailable
from checkout.seller.seller import DeliveryTerms, Seller


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class PricedItem:
    product_id: str
    name: str
    product_type: str
    unit_price: float
    quantity: int
    line_total: float


@dataclass(frozen=True)
class SellerGroup:
    seller: DeliveryTerms
    items: tuple[PricedItem, ...]
    subtotal: float

    @property
    def seller_id(self) -> str:
        return self.seller.seller_id

    def with_item(self, item: PricedItem) -> "SellerGroup":
        return replace(
            self,
            items=self.items + (item,),
            subtotal=round(self.subtotal + item.line_total, 2),
        )


def _validate_lines(lines):
    if not lines:
        raise ValidationError({"items": ["No items provided"]})
    for line in lines:
        if line.quantity is None or line.quantity < 1:
            raise ValidationError({"quantity": [f"Quantity for product {line.product_id} must be at least 1"]})


def _price_line(line: CartLine) -> tuple[DeliveryTerms, PricedItem]:
    try:
        product = current_domain.repository_for(Product).get(line.product_id)
    except ObjectNotFoundError:
        raise ProductUnavailable(line.product_id) from None
    if not product.is_active:
        raise ProductUnavailable(line.product_id)

    try:
        seller = current_domain.repository_for(Seller).get(product.seller_id)
    except ObjectNotFoundError:
        raise ProductUnavailable(line.product_id) from None

    item = PricedItem(
        product_id=str(product.id),
        name=product.name,
        product_type=product.product_type,
        unit_price=product.price,
        quantity=line.quantity,
        line_total=round(product.price * line.quantity, 2),
    )
    return seller.delivery_terms(), item


def _fold(groups: tuple[SellerGroup, ...], priced) -> tuple[SellerGroup, ...]:
    terms, item = priced
    for index, group in enumerate(groups):
        if group.seller_id == terms.seller_id:
            return groups[:index] + (group.with_item(item),) + groups[index + 1 :]
    return groups + (SellerGroup(seller=terms, items=(item,), subtotal=item.line_total),)


def group_by_seller(lines) -> tuple[SellerGroup, ...]:
    """Price every cart line and group the results by owning seller.

    Raises ``ProductUnavailable`` for a missing or inactive product and a
    ``ValidationError`` for an empty cart or a non-positive quantity.
    """
    lines = list(lines)
    _validate_lines(lines)
    return reduce(_fold, (_price_line(line) for line in lines), ())


def cart_subtotal(groups) -> float:
    return round(sum(group.subtotal for group in groups), 2)
