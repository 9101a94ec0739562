"""
Pytest configuration and shared fixtures.
"""

import pytest

from cspbuilder import ResponseHeaders, create_policy, reset_default_policy


@pytest.fixture
def response_headers():
    """Uncommitted response headers acting as the transport collaborator."""
    return ResponseHeaders()


@pytest.fixture
def policy(response_headers):
    """A fresh policy guarded by the response headers' commit flag."""
    return create_policy(headers_sent=response_headers.is_committed)


@pytest.fixture(autouse=True)
def _fresh_default_policy():
    reset_default_policy()
    yield
    reset_default_policy()
