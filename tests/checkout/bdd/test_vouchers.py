"""BDD tests for voucher previews and redemption."""

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from threading import Barrier

from checkout.domain import checkout
from checkout.errors import VoucherExhausted
from checkout.voucher.engine import VoucherContext, preview_voucher
from checkout.voucher.voucher import Voucher
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/vouchers.feature")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a percentage voucher "{code}" of {percent:g}% capped at {cap:g}'))
def capped_percentage_voucher(make_voucher, code, percent, cap):
    make_voucher(code=code, discount_type="PERCENTAGE", discount_value=percent, max_discount_amount=cap)


@given(parsers.cfparse('an expired voucher "{code}"'))
def expired_voucher(make_voucher, code):
    now = datetime.now(UTC)
    make_voucher(code=code, valid_from=now - timedelta(days=60), valid_until=now - timedelta(days=1))


@given(parsers.cfparse('a voucher "{code}" with 1 use left'))
def voucher_with_last_use(make_voucher, code):
    make_voucher(code=code, max_uses=5, used_count=4)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('a customer previews "{code}" on a subtotal of {subtotal:g}'), target_fixture="voucher_quote")
def preview(attempt, code, subtotal):
    return attempt(preview_voucher, code, VoucherContext(role="CUSTOMER", subtotal=subtotal))


@when(parsers.cfparse('two customers redeem "{code}" at the same time'), target_fixture="outcomes")
def race_for_voucher(code):
    barrier = Barrier(2)

    def redeem():
        with checkout.domain_context():
            barrier.wait()
            try:
                current_domain.repository_for(Voucher).claim_use(code)
                return "claimed"
            except VoucherExhausted:
                return "exhausted"

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [pool.submit(redeem) for _ in range(2)]
        return sorted(future.result() for future in futures)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the discount is {amount:g}"))
def discount_is(voucher_quote, amount):
    assert voucher_quote.discount_amount == amount


@then(parsers.cfparse('"{code}" has been used {count:d} times'))
def used_count_is(code, count):
    assert current_domain.repository_for(Voucher).find_by_code(code).used_count == count


@then(parsers.cfparse('the voucher is rejected as "{reason}"'))
def voucher_rejected_as(error, reason):
    assert error["exc"] is not None, "Expected the voucher to be rejected"
    assert error["exc"].reason == reason


@then("exactly one redemption succeeds")
def one_redemption_succeeds(outcomes):
    assert outcomes.count("claimed") == 1


@then("the other is told the voucher is exhausted")
def other_is_exhausted(outcomes):
    assert outcomes.count("exhausted") == 1
