import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def support_bed():
    from support.domain import support

    bed = DomainFixture(support)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(support_bed):
    with support_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def gateway():
    """A fresh fake gateway installed for the duration of one test."""
    from support.gateway import reset_gateway, set_gateway
    from support.gateway.fake_adapter import FakeSupportGateway

    fake = FakeSupportGateway()
    set_gateway(fake)
    yield fake
    reset_gateway()
