"""Voucher claiming, releasing and previewing against the repository."""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest
from checkout.domain import checkout
from checkout.errors import VoucherExhausted, VoucherInvalid, VoucherNotFound
from checkout.voucher.engine import VoucherContext, preview_voucher
from checkout.voucher.voucher import Voucher
from protean import current_domain


def _repo():
    return current_domain.repository_for(Voucher)


class TestFindByCode:
    def test_lookup_ignores_case_and_whitespace(self, make_voucher):
        make_voucher(code="SAVE20")
        assert _repo().find_by_code("  save20 ").code == "SAVE20"

    def test_unknown_code(self):
        assert _repo().find_by_code("NOPE") is None

    def test_find_active(self, make_voucher):
        make_voucher(code="LIVE")
        make_voucher(code="OLD", is_active=False)
        assert [v.code for v in _repo().find_active()] == ["LIVE"]


class TestClaimUse:
    def test_claim_increments_usage(self, make_voucher):
        make_voucher(code="SAVE20", max_uses=5)
        _repo().claim_use("save20")
        assert _repo().find_by_code("SAVE20").used_count == 1

    def test_claim_last_use(self, make_voucher):
        make_voucher(code="LAST", max_uses=3, used_count=2)
        _repo().claim_use("LAST")
        voucher = _repo().find_by_code("LAST")
        assert voucher.used_count == 3
        assert voucher.is_exhausted()

    def test_claim_when_exhausted(self, make_voucher):
        make_voucher(code="GONE", max_uses=1, used_count=1)
        with pytest.raises(VoucherExhausted):
            _repo().claim_use("GONE")
        assert _repo().find_by_code("GONE").used_count == 1

    def test_claim_inactive_voucher(self, make_voucher):
        make_voucher(code="OFF", is_active=False)
        with pytest.raises(VoucherNotFound):
            _repo().claim_use("OFF")

    def test_claim_unknown_voucher(self):
        with pytest.raises(VoucherNotFound):
            _repo().claim_use("MISSING")

    def test_release_returns_the_use(self, make_voucher):
        make_voucher(code="SAVE20", max_uses=1)
        _repo().claim_use("SAVE20")
        _repo().release_use("SAVE20")
        assert _repo().find_by_code("SAVE20").used_count == 0


class TestConcurrentClaims:
    def test_only_one_of_two_racing_claims_gets_the_last_use(self, make_voucher):
        make_voucher(code="LASTONE", max_uses=5, used_count=4)
        barrier = Barrier(2)

        def attempt():
            with checkout.domain_context():
                barrier.wait()
                try:
                    current_domain.repository_for(Voucher).claim_use("LASTONE")
                    return "claimed"
                except VoucherExhausted:
                    return "exhausted"

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = sorted(pool.map(lambda _: attempt(), range(2)))

        assert outcomes == ["claimed", "exhausted"]
        assert _repo().find_by_code("LASTONE").used_count == 5

    def test_usage_never_exceeds_cap_under_load(self, make_voucher):
        make_voucher(code="FLASH", max_uses=3)

        def attempt(_):
            with checkout.domain_context():
                try:
                    current_domain.repository_for(Voucher).claim_use("FLASH")
                    return True
                except VoucherExhausted:
                    return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(20)))

        assert results.count(True) == 3
        assert _repo().find_by_code("FLASH").used_count == 3


class TestPreview:
    def test_preview_prices_without_consuming(self, make_voucher):
        make_voucher(code="SAVE20", discount_value=20.0, max_discount_amount=500.0)
        context = VoucherContext(role="CUSTOMER", subtotal=3000.0, product_types=frozenset({"EGGS"}))

        quote = preview_voucher("save20", context)

        assert quote.discount_amount == 500.0
        assert _repo().find_by_code("SAVE20").used_count == 0

    def test_preview_unknown_code(self):
        with pytest.raises(VoucherInvalid) as exc:
            preview_voucher("NOPE", VoucherContext(role="CUSTOMER", subtotal=100.0))
        assert exc.value.reason == "not_found"
