"""In-memory M-Pesa gateway for development and tests.

Every push succeeds unless configured otherwise and leaves its invoice
PENDING. Tests settle an invoice with ``settle`` to simulate the supporter
entering (or refusing) their PIN.
"""

from uuid import uuid4

from support.gateway.port import InvoiceStatus, StkPushResult, SupportGateway


class FakeSupportGateway(SupportGateway):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "STK push rejected"
        self.invoices: dict[str, InvoiceStatus] = {}
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "STK push rejected") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def stk_push(self, amount: float, phone_number: str, api_ref: str, currency: str = "KES") -> StkPushResult:
        self.calls.append(
            {
                "method": "stk_push",
                "amount": amount,
                "phone_number": phone_number,
                "api_ref": api_ref,
                "currency": currency,
            }
        )
        if not self.should_succeed:
            return StkPushResult(success=False, state="FAILED", failure_reason=self.failure_reason)

        invoice_id = f"fake_inv_{uuid4().hex[:12]}"
        self.invoices[invoice_id] = InvoiceStatus(state="PENDING")
        return StkPushResult(success=True, invoice_id=invoice_id, state="PENDING")

    def check_status(self, invoice_id: str) -> InvoiceStatus:
        self.calls.append({"method": "check_status", "invoice_id": invoice_id})
        return self.invoices.get(invoice_id, InvoiceStatus(state="PENDING"))

    def settle(
        self,
        invoice_id: str,
        state: str,
        mpesa_reference: str | None = None,
        failed_reason: str | None = None,
        failed_code: str | None = None,
    ) -> None:
        self.invoices[invoice_id] = InvoiceStatus(
            state=state,
            mpesa_reference=mpesa_reference,
            failed_reason=failed_reason,
            failed_code=failed_code,
        )
