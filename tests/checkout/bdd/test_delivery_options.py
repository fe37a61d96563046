"""BDD tests for delivery options at checkout."""

from checkout.cart.grouping import CartLine
from checkout.options.summary import quote_delivery
from checkout.seller.delivery_fee import ConfigureDeliveryFee
from checkout.seller.seller import Seller
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/delivery_options.feature")


def _option(quote, seller_name):
    return next(option for option in quote.delivery_options if option.seller_name == seller_name)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("the platform delivery fee is {amount:g}"))
def platform_fee(amount):
    current_domain.process(ConfigureDeliveryFee(name="Standard", amount=amount, is_default=True), asynchronous=False)


@given(parsers.cfparse('a seller "{name}" that does not deliver'))
def non_delivering_seller(make_seller, sellers, name):
    sellers[name] = make_seller(name=name)


@given(parsers.cfparse('a seller "{name}" delivering to counties "{counties}"'))
def county_seller(make_seller, sellers, name, counties):
    sellers[name] = make_seller(
        name=name,
        offers_delivery=True,
        delivery_counties=[county.strip() for county in counties.split(",")],
    )


@given(parsers.cfparse('a seller "{name}" delivering to province "{province}" with a flat fee of {fee:g}'))
def province_seller(make_seller, sellers, name, province, fee):
    sellers[name] = make_seller(
        name=name,
        offers_delivery=True,
        delivery_provinces=[province],
        delivery_fee_per_km=fee,
    )


@given(parsers.cfparse('"{name}" offers free delivery above {minimum:g}'))
def free_delivery_above(sellers, name, minimum):
    repo = current_domain.repository_for(Seller)
    seller = repo.get(sellers[name].id)
    seller.update_delivery_settings(offers_free_delivery=True, min_order_for_free_delivery=minimum)
    repo.add(seller)


@given(parsers.cfparse('the cart holds {quantity:d} x "{product}" at {price:g} from "{seller}"'))
def cart_holds(make_product, sellers, cart_lines, quantity, product, price, seller):
    listed = make_product(sellers[seller], name=product, price=price)
    cart_lines.append(CartLine(str(listed.id), quantity))


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the buyer asks for delivery options to "{county}"'), target_fixture="quote")
def ask_for_options(cart_lines, attempt, county):
    return attempt(quote_delivery, cart_lines, county)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the order can proceed")
def order_can_proceed(quote):
    assert quote.can_proceed_with_order is True
    assert quote.undeliverable_items is None


@then("the order cannot proceed")
def order_cannot_proceed(quote):
    assert quote.can_proceed_with_order is False


@then(parsers.cfparse('"{seller}" requires platform delivery'))
def requires_platform_delivery(quote, seller):
    assert _option(quote, seller).requires_platform_delivery is True


@then(parsers.cfparse('"{seller}" is listed as undeliverable'))
def listed_as_undeliverable(quote, seller):
    assert seller in [option.seller_name for option in quote.undeliverable_items]


@then(parsers.cfparse('"{seller}" qualifies for free delivery'))
def qualifies_for_free_delivery(quote, seller):
    assert _option(quote, seller).free_delivery_eligible is True


@then(parsers.cfparse('the delivery fee for "{seller}" is {fee:g}'))
def delivery_fee_is(quote, seller, fee):
    assert _option(quote, seller).delivery_fee == fee


@then(parsers.cfparse('the delivery message for "{seller}" says "{text}"'))
def delivery_message_says(quote, seller, text):
    assert text in _option(quote, seller).delivery_message


@then(parsers.cfparse("the total delivery fee is {fee:g}"))
def total_delivery_fee_is(quote, fee):
    assert quote.total_delivery_fee == fee
