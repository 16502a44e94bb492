"""
Pytest fixtures for project tests.
"""

import pytest

from projects.tests.factories import ProjectFactory


@pytest.fixture
def project(db):
    """Create a confirmed project."""
    return ProjectFactory()
