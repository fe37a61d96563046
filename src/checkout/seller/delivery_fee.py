"""Platform delivery fee records — aggregate, command and lookup.

When a seller does not deliver, the marketplace delivers on its behalf and
charges the amount of the record flagged ``is_default``. Only one record is
the default at a time; configuring a new default demotes the previous one.
"""

from datetime import UTC, datetime

from protean import handle
from protean.fields import Boolean, DateTime, Float, String
from protean.utils.globals import current_domain

from checkout import config
from checkout.domain import checkout, logger


@checkout.aggregate
class DeliveryFee:
    name = String(required=True, max_length=100)
    amount = Float(required=True, min_value=0.0)
    is_default = Boolean(default=False)
    updated_at = DateTime()

    def demote(self):
        self.is_default = False
        self.updated_at = datetime.now(UTC)


@checkout.command(part_of="DeliveryFee")
class ConfigureDeliveryFee:
    name = String(required=True, max_length=100)
    amount = Float(required=True, min_value=0.0)
    is_default = Boolean(default=False)


@checkout.command_handler(part_of=DeliveryFee)
class DeliveryFeeHandler:
    @handle(ConfigureDeliveryFee)
    def configure_fee(self, command):
        repo = current_domain.repository_for(DeliveryFee)
        if command.is_default:
            for current in repo._dao.query.filter(is_default=True).all().items:
                current.demote()
                repo.add(current)

        fee = DeliveryFee(
            name=command.name,
            amount=command.amount,
            is_default=bool(command.is_default),
            updated_at=datetime.now(UTC),
        )
        repo.add(fee)
        logger.info("delivery_fee_configured", name=fee.name, amount=fee.amount, is_default=fee.is_default)
        return str(fee.id)


def platform_delivery_fee() -> float:
    """Amount of the default platform fee record, or the configured fallback."""
    defaults = current_domain.repository_for(DeliveryFee)._dao.query.filter(is_default=True).all().items
    if defaults and defaults[0].amount:
        return defaults[0].amount
    return config.platform_delivery_fee()
