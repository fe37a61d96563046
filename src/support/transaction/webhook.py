"""Gateway callbacks and status refresh — command, handler and query.

Callbacks are matched to transactions through the ``support-{id}`` API
reference. Callbacks for other payment flows, and replays for
transactions that already settled, are acknowledged and ignored.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import String
from protean.utils.globals import current_domain

from support.domain import logger, support
from support.gateway import get_gateway
from support.transaction.transaction import SupportStatus, SupportTransaction

API_REF_PREFIX = "support-"


def transaction_id_from(api_ref: str | None) -> str | None:
    if api_ref and api_ref.startswith(API_REF_PREFIX):
        return api_ref[len(API_REF_PREFIX) :]
    return None


@support.command(part_of="SupportTransaction")
class ProcessSupportWebhook:
    api_ref = String(max_length=150)
    invoice_id = String(max_length=100)
    state = String(required=True, max_length=20)  # COMPLETE, FAILED, PENDING, PROCESSING
    mpesa_reference = String(max_length=100)
    failed_reason = String(max_length=500)
    failed_code = String(max_length=20)


@support.command_handler(part_of=SupportTransaction)
class SupportWebhookHandler:
    @handle(ProcessSupportWebhook)
    def process_webhook(self, command):
        transaction_id = transaction_id_from(command.api_ref)
        if transaction_id is None:
            logger.info("support_webhook_skipped", api_ref=command.api_ref)
            return "ignored"

        repo = current_domain.repository_for(SupportTransaction)
        try:
            tx = repo.get(transaction_id)
        except ObjectNotFoundError:
            logger.warning("support_webhook_unknown_transaction", transaction_id=transaction_id)
            return "ignored"

        if command.state == "COMPLETE":
            changed = tx.complete(mpesa_reference=command.mpesa_reference)
        elif command.state == "FAILED":
            changed = tx.fail(code=command.failed_code, reason=command.failed_reason)
        else:
            return "pending"

        if not changed:
            logger.info("support_webhook_replayed", transaction_id=transaction_id, status=tx.status)
            return "ignored"

        repo.add(tx)
        logger.info("support_transaction_settled", transaction_id=transaction_id, status=tx.status)
        return "processed"


def refresh_status(transaction_id: str) -> SupportTransaction:
    """Current state of a transaction, asking the gateway while it is pending."""
    repo = current_domain.repository_for(SupportTransaction)
    tx = repo.get(transaction_id)
    if tx.status != SupportStatus.PENDING.value or not tx.invoice_id:
        return tx

    invoice = get_gateway().check_status(tx.invoice_id)
    if invoice.state in ("COMPLETE", "FAILED"):
        current_domain.process(
            ProcessSupportWebhook(
                api_ref=tx.api_ref,
                invoice_id=tx.invoice_id,
                state=invoice.state,
                mpesa_reference=invoice.mpesa_reference,
                failed_reason=invoice.failed_reason,
                failed_code=invoice.failed_code,
            ),
            asynchronous=False,
        )
        tx = repo.get(transaction_id)
    return tx
