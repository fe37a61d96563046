"""Support bounded context — reader tips for blog authors paid over M-Pesa.

Tracks webhook-fed support transactions and exposes their status to the
client, which polls until the transaction settles or times out.
"""

import structlog
from protean.domain import Domain

support = Domain(name="support")

logger = structlog.get_logger(__name__)
