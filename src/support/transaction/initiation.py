"""Support initiation — command and handler.

Records a PENDING transaction and asks the gateway to prompt the
supporter's phone. A push the gateway refuses fails the transaction at
once so the reader can retry.
"""

from protean import handle
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from support.domain import logger, support
from support.gateway import get_gateway
from support.transaction.transaction import SupportTransaction


@support.command(part_of="SupportTransaction")
class InitiateSupport:
    author_id = Identifier(required=True)
    post_id = Identifier()
    amount = Float(required=True)
    phone = String(required=True, max_length=20)
    supporter_name = String(max_length=100)
    is_anonymous = Boolean(default=False)
    message = Text()


@support.command_handler(part_of=SupportTransaction)
class InitiateSupportHandler:
    @handle(InitiateSupport)
    def initiate_support(self, command):
        tx = SupportTransaction.initiate(
            author_id=command.author_id,
            amount=command.amount,
            phone=command.phone,
            post_id=command.post_id,
            supporter_name=command.supporter_name,
            is_anonymous=bool(command.is_anonymous),
            message=command.message,
        )

        result = get_gateway().stk_push(
            amount=tx.amount,
            phone_number=tx.supporter_phone,
            api_ref=tx.api_ref,
            currency=tx.currency,
        )
        if result.success:
            tx.attach_invoice(result.invoice_id)
        else:
            tx.fail(reason=result.failure_reason or "Payment initiation failed")
            logger.warning("support_push_rejected", transaction_id=str(tx.id), reason=result.failure_reason)

        current_domain.repository_for(SupportTransaction).add(tx)
        logger.info("support_initiated", transaction_id=str(tx.id), amount=tx.amount, status=tx.status)
        return str(tx.id)
