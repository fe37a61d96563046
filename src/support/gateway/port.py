"""Mobile-money gateway port (abstract interface).

Support payments are collected with an M-Pesa STK push: the gateway sends
a PIN prompt to the supporter's phone and later reports the outcome by
webhook, or on demand through ``check_status``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class StkPushResult:
    """Result of asking the gateway to prompt the supporter's phone."""

    success: bool
    invoice_id: str | None = None
    state: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class InvoiceStatus:
    state: str  # PENDING, PROCESSING, COMPLETE, FAILED
    mpesa_reference: str | None = None
    failed_reason: str | None = None
    failed_code: str | None = None


class SupportGateway(ABC):
    @abstractmethod
    def stk_push(self, amount: float, phone_number: str, api_ref: str, currency: str = "KES") -> StkPushResult:
        """Prompt ``phone_number`` to authorise a payment of ``amount``."""
        ...

    @abstractmethod
    def check_status(self, invoice_id: str) -> InvoiceStatus:
        """Ask the gateway for the current state of an invoice."""
        ...
