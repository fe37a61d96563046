"""Checkout bounded context — multi-seller delivery quoting, vouchers and order lifecycle.

Partitions a cart by seller, decides per seller whether (and for how much)
delivery to the buyer's county is possible, prices discount vouchers, and
drives confirmed orders through the payment and delivery lifecycle.
"""

import structlog
from protean.domain import Domain

checkout = Domain(name="checkout")

logger = structlog.get_logger(__name__)
