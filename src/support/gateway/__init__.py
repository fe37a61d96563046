"""Support gateway factory.

``get_gateway()`` returns the active adapter, the in-memory fake unless a
real adapter has been installed with ``set_gateway()``.
"""

from support.gateway.fake_adapter import FakeSupportGateway
from support.gateway.port import SupportGateway

_current_gateway: SupportGateway | None = None


def get_gateway() -> SupportGateway:
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeSupportGateway()
    return _current_gateway


def set_gateway(gateway: SupportGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
