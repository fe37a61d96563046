from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Catalogue factories
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_seller():
    from checkout.seller.seller import Seller

    def _make(name="Kuku Farm", role="SELLER", **delivery_settings):
        seller = Seller.register(name=name, role=role, **delivery_settings)
        current_domain.repository_for(Seller).add(seller)
        return seller

    return _make


@pytest.fixture()
def make_product():
    from checkout.catalogue.product import Product

    def _make(seller, name="Kienyeji eggs (tray)", price=450.0, product_type="EGGS", is_active=True):
        product = Product.list_for(seller_id=str(seller.id), name=name, price=price, product_type=product_type)
        if not is_active:
            product.deactivate()
        current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture()
def make_voucher():
    from checkout.voucher.voucher import Voucher

    def _make(code="SAVE20", discount_type="PERCENTAGE", discount_value=20.0, **overrides):
        now = datetime.now(UTC)
        params = {
            "name": f"{code} promotion",
            "valid_from": now - timedelta(days=1),
            "valid_until": now + timedelta(days=30),
            "max_uses": 100,
        }
        params.update(overrides)
        used_count = params.pop("used_count", 0)
        is_active = params.pop("is_active", True)

        voucher = Voucher.issue(code=code, discount_type=discount_type, discount_value=discount_value, **params)
        voucher.used_count = used_count
        voucher.is_active = is_active
        current_domain.repository_for(Voucher).add(voucher)
        return current_domain.repository_for(Voucher).find_by_code(code)

    return _make


@pytest.fixture()
def delivering_seller(make_seller):
    """Delivers across Central, buyers may pay on receipt, standard fee 150."""
    return make_seller(
        name="Central Poultry",
        offers_delivery=True,
        offers_pay_after_delivery=True,
        delivery_provinces=["Central"],
        delivery_fee_per_km=150.0,
    )


@pytest.fixture()
def place_cart_order(make_product, delivering_seller):
    """Place an order for two trays of eggs from ``delivering_seller`` into Kiambu."""
    from checkout.cart.grouping import CartLine
    from checkout.order.placement import place_order

    product = make_product(delivering_seller, price=450.0)

    def _place(customer_id="cust-1", payment_type="BEFORE_DELIVERY", voucher_code=None, delivery_voucher_code=None):
        return place_order(
            customer_id=customer_id,
            role="CUSTOMER",
            lines=[CartLine(str(product.id), 2)],
            county="Kiambu",
            payment_type=payment_type,
            voucher_code=voucher_code,
            delivery_voucher_code=delivery_voucher_code,
        )

    return _place


@pytest.fixture()
def make_delivery_voucher():
    from checkout.voucher.delivery_voucher import DeliveryVoucher

    def _make(code="SHIPFREE", discount_type="FREE_SHIPPING", discount_value=1.0, **overrides):
        used_count = overrides.pop("used_count", 0)
        is_active = overrides.pop("is_active", True)
        voucher = DeliveryVoucher.issue(
            code=code,
            name=overrides.pop("name", f"{code} delivery promotion"),
            discount_type=discount_type,
            discount_value=discount_value,
            **overrides,
        )
        voucher.used_count = used_count
        voucher.is_active = is_active
        current_domain.repository_for(DeliveryVoucher).add(voucher)
        return current_domain.repository_for(DeliveryVoucher).find_by_code(code)

    return _make
