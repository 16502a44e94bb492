"""
Test configuration and fixtures for authentication tests.

Usage:
    def test_example(admin_user):
        assert admin_user.is_admin
"""

import pytest

from authentication.tests.factories import AdminFactory, UserFactory


@pytest.fixture
def user(db):
    """Create a client user."""
    return UserFactory()


@pytest.fixture
def admin_user(db):
    """Create an active admin."""
    return AdminFactory()
