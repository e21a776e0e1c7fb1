"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

User = get_user_model()


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def api_client():
    """
    Unauthenticated DRF API client.

    Usage:
        def test_something(api_client):
            response = api_client.get('/api/orders/')
    """
    return APIClient()


@pytest.fixture
def staff_user(db):
    """Cashier/manager account used by the authenticated client."""
    return User.objects.create_user(
        username='cashier',
        password='password123',
        first_name='Asha',
        last_name='Rao',
        is_staff=True,
    )


@pytest.fixture
def authenticated_client(api_client, staff_user):
    """API client logged in as staff_user."""
    api_client.force_authenticate(user=staff_user)
    return api_client


# ============================================================================
# IMPORT ALL FIXTURES FROM core_backend/tests/fixtures.py
# ============================================================================
from core_backend.tests.fixtures import *  # noqa: E402,F401,F403
