"""Support initiation, gateway callbacks and status refresh."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from support.transaction.initiation import InitiateSupport
from support.transaction.transaction import SupportStatus, SupportTransaction
from support.transaction.webhook import ProcessSupportWebhook, refresh_status, transaction_id_from


def _initiate(**overrides):
    params = {"author_id": "author-1", "amount": 100.0, "phone": "0712345678", "supporter_name": "Otieno"}
    params.update(overrides)
    tx_id = current_domain.process(InitiateSupport(**params), asynchronous=False)
    return current_domain.repository_for(SupportTransaction).get(tx_id)


def _webhook(tx, state, **extra):
    return current_domain.process(ProcessSupportWebhook(api_ref=tx.api_ref, state=state, **extra), asynchronous=False)


class TestInitiateSupport:
    def test_push_is_sent_and_invoice_recorded(self, gateway):
        tx = _initiate()

        assert tx.status == SupportStatus.PENDING.value
        assert tx.invoice_id.startswith("fake_inv_")
        push = gateway.calls[0]
        assert push["method"] == "stk_push"
        assert push["phone_number"] == "254712345678"
        assert push["api_ref"] == f"support-{tx.id}"
        assert push["amount"] == 100.0

    def test_rejected_push_fails_the_transaction(self, gateway):
        gateway.configure(should_succeed=False, failure_reason="Invalid phone number")

        tx = _initiate()

        assert tx.status == SupportStatus.FAILED.value
        assert tx.failed_reason == "Invalid phone number"
        assert tx.can_retry is True

    def test_amount_below_minimum_never_reaches_gateway(self, gateway):
        with pytest.raises(ValidationError):
            _initiate(amount=9.0)
        assert gateway.calls == []


class TestWebhook:
    def test_transaction_id_from_api_ref(self):
        assert transaction_id_from("support-abc") == "abc"
        assert transaction_id_from("order-abc") is None
        assert transaction_id_from(None) is None

    def test_complete(self, gateway):
        tx = _initiate()

        assert _webhook(tx, "COMPLETE", mpesa_reference="QKL1234XYZ") == "processed"

        stored = current_domain.repository_for(SupportTransaction).get(tx.id)
        assert stored.status == SupportStatus.COMPLETED.value
        assert stored.mpesa_reference == "QKL1234XYZ"

    def test_replayed_callback_is_ignored(self, gateway):
        tx = _initiate()
        _webhook(tx, "COMPLETE", mpesa_reference="QKL1234XYZ")

        assert _webhook(tx, "COMPLETE", mpesa_reference="DUPLICATE") == "ignored"
        assert _webhook(tx, "FAILED", failed_code="1") == "ignored"

        stored = current_domain.repository_for(SupportTransaction).get(tx.id)
        assert stored.status == SupportStatus.COMPLETED.value
        assert stored.mpesa_reference == "QKL1234XYZ"

    def test_user_cancelled(self, gateway):
        tx = _initiate()
        _webhook(tx, "FAILED", failed_code="1032", failed_reason="Request cancelled by user")

        stored = current_domain.repository_for(SupportTransaction).get(tx.id)
        assert stored.status == SupportStatus.CANCELLED.value

    def test_pending_state_changes_nothing(self, gateway):
        tx = _initiate()
        assert _webhook(tx, "PROCESSING") == "pending"
        assert current_domain.repository_for(SupportTransaction).get(tx.id).status == SupportStatus.PENDING.value

    def test_other_payment_flows_are_ignored(self):
        result = current_domain.process(ProcessSupportWebhook(api_ref="order-123", state="COMPLETE"), asynchronous=False)
        assert result == "ignored"

    def test_unknown_transaction_is_ignored(self):
        result = current_domain.process(
            ProcessSupportWebhook(api_ref="support-missing", state="COMPLETE"), asynchronous=False
        )
        assert result == "ignored"


class TestRefreshStatus:
    def test_pending_invoice_stays_pending(self, gateway):
        tx = _initiate()
        assert refresh_status(tx.id).status == SupportStatus.PENDING.value

    def test_settled_invoice_is_applied(self, gateway):
        tx = _initiate()
        gateway.settle(tx.invoice_id, "FAILED", failed_code="1", failed_reason="Insufficient funds")

        refreshed = refresh_status(tx.id)

        assert refreshed.status == SupportStatus.FAILED.value
        assert refreshed.failed_reason == "Insufficient M-Pesa balance."

    def test_settled_transaction_does_not_query_gateway(self, gateway):
        tx = _initiate()
        _webhook(tx, "COMPLETE", mpesa_reference="QKL1234XYZ")
        calls_before = len(gateway.calls)

        refresh_status(tx.id)

        assert len(gateway.calls) == calls_before
