# This project was developed with assistance from AI tools.
"""Shared fixtures for compliance engine and route tests."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from factories import (
    make_assignment,
    make_employee,
    make_expiring_requirement,
    make_requirement,
    make_source,
    make_template,
)
from src.main import app as real_app
from src.routes.compliance import get_compliance_source


@pytest.fixture
def onboarding():
    """Onboarding template: required contract + expiring certification, optional review."""
    template = make_template(id=10, name="Onboarding")
    requirements = [
        make_requirement(id=100, template_id=10, display_order=1),
        make_expiring_requirement(id=101, template_id=10, display_order=2),
        make_requirement(
            id=102,
            template_id=10,
            document_name="Performance Review",
            is_required=False,
            display_order=3,
        ),
    ]
    return template, requirements


@pytest.fixture
def managers_source(onboarding):
    """Two managers and one cook; onboarding assigned to the manager role."""
    return make_source(
        employees=[
            make_employee(id=1, name="Ana Lopez", role="manager"),
            make_employee(id=2, name="Ben Okafor", role="manager"),
            make_employee(id=3, name="Cy Park", role="cook"),
        ],
        templates=[onboarding],
        assignments=[make_assignment(id=1, template_id=10, role="manager")],
    )


@pytest.fixture(autouse=True)
def _clean_overrides():
    """Clear app dependency overrides after each test."""
    yield
    real_app.dependency_overrides.clear()


@pytest.fixture
def make_client():
    """Factory fixture: route the app's compliance source to the given source."""

    def _make(source) -> TestClient:
        async def fake_source():
            return source

        real_app.dependency_overrides[get_compliance_source] = fake_source
        return TestClient(real_app)

    with patch("src.routes.compliance.get_matrix_cache", return_value=None):
        yield _make
