"""Client-side wait for a support payment to settle.

``poll_payment_status`` checks the transaction status every ``interval``
seconds until it settles or ``timeout`` seconds pass. It runs as an ordinary
coroutine, so the caller cancels it by cancelling the task (the reader
closed the dialog or navigated away); cancellation propagates out as
``asyncio.CancelledError``. A fetch that errors is logged and retried on
the next tick.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from support import config
from support.domain import logger

TIMEOUT_REASON = "Payment request timed out."
TIMEOUT_ACTION = "The payment was not completed in time. Please try again."
FALLBACK_REASON = "Payment could not be completed."
FALLBACK_ACTION = "Please try again."


@dataclass(frozen=True)
class PaymentStatusView:
    status: str
    failed_reason: str | None = None
    action_required: str | None = None
    can_retry: bool | None = None


class PaymentFailed(Exception):
    """The payment did not complete; carries what the reader should be told."""

    def __init__(self, reason: str, action_required: str, can_retry: bool = True, status: str = "FAILED"):
        super().__init__(reason)
        self.reason = reason
        self.action_required = action_required
        self.can_retry = can_retry
        self.status = status


Fetch = Callable[[], Awaitable[PaymentStatusView]]


async def poll_payment_status(
    fetch: Fetch,
    interval: float | None = None,
    timeout: float | None = None,
) -> PaymentStatusView:
    """Wait for COMPLETED; raise ``PaymentFailed`` on FAILED, CANCELLED or deadline."""
    interval = config.poll_interval() if interval is None else interval
    timeout = config.poll_timeout() if timeout is None else timeout

    async def _poll() -> PaymentStatusView:
        while True:
            await asyncio.sleep(interval)
            try:
                view = await fetch()
            except Exception as exc:
                logger.warning("support_status_poll_error", error=str(exc))
                continue

            if view.status == "COMPLETED":
                return view
            if view.status in ("FAILED", "CANCELLED"):
                raise PaymentFailed(
                    reason=view.failed_reason or FALLBACK_REASON,
                    action_required=view.action_required or FALLBACK_ACTION,
                    can_retry=view.can_retry is not False,
                    status=view.status,
                )

    try:
        return await asyncio.wait_for(_poll(), timeout=timeout)
    except TimeoutError:
        raise PaymentFailed(reason=TIMEOUT_REASON, action_required=TIMEOUT_ACTION, can_retry=True) from None


def start_payment_poll(fetch: Fetch, interval: float | None = None, timeout: float | None = None) -> asyncio.Task:
    """Schedule the poll on the running loop and hand back the cancellable task."""
    return asyncio.create_task(poll_payment_status(fetch, interval=interval, timeout=timeout))
