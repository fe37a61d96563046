"""Repositories for the Voucher and DeliveryVoucher aggregates.

``claim_use`` is the one place a voucher's usage counter is incremented. The
read, the cap check and the write happen under a single lock and are
committed in their own unit of work before the lock is released, so two
checkouts racing for the last use cannot both succeed. Protean's aggregate
version check rejects a stale write from another process.
"""

import threading

from protean.core.unit_of_work import UnitOfWork

from checkout.domain import checkout, logger
from checkout.errors import VoucherNotFound
from checkout.voucher.delivery_voucher import DeliveryVoucher
from checkout.voucher.voucher import Voucher

_claim_lock = threading.Lock()


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def _find_by_code(repo, code):
    results = repo._dao.query.filter(code=normalize_code(code)).all()
    return results.first if results.items else None


def _claim(repo, code: str, field: str):
    with _claim_lock:
        voucher = _find_by_code(repo, code)
        if voucher is None or not voucher.is_active:
            raise VoucherNotFound(f"Voucher {normalize_code(code)} not found", field=field)
        voucher.record_redemption()
        with UnitOfWork():
            repo.add(voucher)

    logger.info(
        "voucher_claimed",
        kind=type(voucher).__name__,
        code=voucher.code,
        used_count=voucher.used_count,
        max_uses=voucher.max_uses,
    )
    return voucher


def _release(repo, code: str, field: str):
    with _claim_lock:
        voucher = _find_by_code(repo, code)
        if voucher is None:
            raise VoucherNotFound(f"Voucher {normalize_code(code)} not found", field=field)
        voucher.release()
        with UnitOfWork():
            repo.add(voucher)

    logger.info("voucher_released", kind=type(voucher).__name__, code=voucher.code, used_count=voucher.used_count)
    return voucher


@checkout.repository(part_of=Voucher)
class VoucherRepository:
    def find_by_code(self, code: str) -> Voucher | None:
        return _find_by_code(self, code)

    def find_active(self) -> list[Voucher]:
        return self._dao.query.filter(is_active=True).all().items

    def claim_use(self, code: str) -> Voucher:
        """Atomically consume one use of the voucher.

        Raises ``VoucherNotFound`` for an unknown or inactive code and
        ``VoucherExhausted`` when every use has already been claimed.
        """
        return _claim(self, code, field="voucher_code")

    def release_use(self, code: str) -> Voucher:
        """Hand back a use claimed for an order that was never created."""
        return _release(self, code, field="voucher_code")


@checkout.repository(part_of=DeliveryVoucher)
class DeliveryVoucherRepository:
    def find_by_code(self, code: str) -> DeliveryVoucher | None:
        return _find_by_code(self, code)

    def find_active(self) -> list[DeliveryVoucher]:
        return self._dao.query.filter(is_active=True).all().items

    def claim_use(self, code: str) -> DeliveryVoucher:
        return _claim(self, code, field="delivery_voucher_code")

    def release_use(self, code: str) -> DeliveryVoucher:
        return _release(self, code, field="delivery_voucher_code")
