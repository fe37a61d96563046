"""Which vouchers a caller may browse.

Sellers and companies see the vouchers they issued, customers see the live
vouchers open to their role, admins see everything. ``active_only`` narrows
any of these to vouchers that could still be redeemed right now.
"""

from datetime import UTC, datetime

from protean.utils.globals import current_domain

from checkout.voucher.delivery_voucher import DeliveryVoucher
from checkout.voucher.engine import as_aware
from checkout.voucher.voucher import Voucher


def _redeemable(voucher: Voucher, now: datetime) -> bool:
    return voucher.is_active and as_aware(voucher.valid_until) >= now and voucher.remaining_uses > 0


def _newest_first(vouchers):
    epoch = datetime.min.replace(tzinfo=UTC)
    return sorted(vouchers, key=lambda v: as_aware(v.created_at) if v.created_at else epoch, reverse=True)


def vouchers_for(role: str, user_id: str, active_only: bool = False, now: datetime | None = None) -> list[Voucher]:
    now = as_aware(now or datetime.now(UTC))
    repo = current_domain.repository_for(Voucher)

    if role in ("SELLER", "COMPANY"):
        vouchers = repo._dao.query.filter(created_by=user_id).all().items
    elif role == "CUSTOMER":
        vouchers = [
            voucher
            for voucher in repo.find_active()
            if as_aware(voucher.valid_until) >= now and (not voucher.roles or role in voucher.roles)
        ]
    else:
        vouchers = repo._dao.query.all().items

    if active_only:
        vouchers = [voucher for voucher in vouchers if _redeemable(voucher, now)]
    return _newest_first(vouchers)


def live_delivery_vouchers(now: datetime | None = None) -> list[DeliveryVoucher]:
    """Active delivery vouchers that are neither expired nor used up."""
    now = as_aware(now or datetime.now(UTC))
    vouchers = current_domain.repository_for(DeliveryVoucher).find_active()
    return _newest_first(v for v in vouchers if not v.is_expired(now) and not v.is_exhausted())
