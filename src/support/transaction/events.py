"""Domain events for the SupportTransaction aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, String

from support.domain import support


@support.event(part_of="SupportTransaction")
class SupportInitiated:
    """A reader started a tip and the STK push was requested."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    author_id = Identifier(required=True)
    post_id = Identifier()
    amount = Float(required=True)
    platform_fee = Float(required=True)
    net_amount = Float(required=True)
    initiated_at = DateTime(required=True)


@support.event(part_of="SupportTransaction")
class SupportCompleted:
    __version__ = 1

    transaction_id = Identifier(required=True)
    author_id = Identifier(required=True)
    amount = Float(required=True)
    net_amount = Float(required=True)
    mpesa_reference = String()
    completed_at = DateTime(required=True)


@support.event(part_of="SupportTransaction")
class SupportFailed:
    """The payment failed, was cancelled on the phone, or timed out."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    status = String(required=True)
    failed_code = String()
    failed_reason = String()
    can_retry = Boolean(default=True)
    failed_at = DateTime(required=True)
