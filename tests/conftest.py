import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config environment before any domain is imported.

    Each bounded context's conftest activates its own domain through a
    ``DomainFixture``; nothing is pushed globally here.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path or "/bdd/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Fee and polling settings come from the environment; start every test from defaults."""
    for name in (
        "PLATFORM_DELIVERY_FEE",
        "STANDARD_DELIVERY_FEE",
        "SUPPORT_PLATFORM_FEE_PERCENT",
        "SUPPORT_POLL_INTERVAL",
        "SUPPORT_POLL_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
