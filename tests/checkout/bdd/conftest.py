"""Shared BDD fixtures and step definitions for the Checkout domain."""

import pytest
from checkout.errors import CheckoutRejection, InvalidTransition
from pytest_bdd import parsers, then


@pytest.fixture()
def error():
    """Container for the rejection raised by the last When step."""
    return {"exc": None}


@pytest.fixture()
def sellers():
    """Sellers created by Given steps, keyed by name."""
    return {}


@pytest.fixture()
def cart_lines():
    return []


@pytest.fixture()
def attempt(error):
    """Run an action, storing a checkout rejection instead of raising it."""

    def _attempt(action, *args, **kwargs):
        try:
            return action(*args, **kwargs)
        except CheckoutRejection as exc:
            error["exc"] = exc
            return None

    return _attempt


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the transition is rejected")
def transition_rejected(error):
    assert isinstance(error["exc"], InvalidTransition), f"Expected InvalidTransition, got {error['exc']!r}"


@then(parsers.cfparse('the request is rejected as "{code}"'))
def request_rejected_as(error, code):
    assert error["exc"] is not None, "Expected a rejection but none was raised"
    assert error["exc"].code == code
