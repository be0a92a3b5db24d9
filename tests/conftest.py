"""
Shared pytest fixtures for the exam engine test suite.
Factory helpers live in tests/factories.py so they can be imported
directly by test modules as well as being used here.
"""
import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from factories import make_admin, make_course, make_questions, make_user


@pytest.fixture(autouse=True)
def _isolated_platform(settings, tmp_path):
    # PlatformSetting is cached across the test database rollback
    cache.clear()
    settings.MEDIA_ROOT = tmp_path / "media"
    settings.PAYSTACK_SECRET_KEY = "sk_test_dummy"
    yield
    cache.clear()


@pytest.fixture
def candidate(db):
    return make_user()


@pytest.fixture
def admin_user(db):
    return make_admin()


@pytest.fixture
def course(db):
    return make_course(code="PY101", title="Python Fundamentals")


@pytest.fixture
def paid_course(db):
    return make_course(code="CLOUD200", title="Cloud Architecture", price="50.00")


@pytest.fixture
def questions(course):
    return make_questions(course, count=10)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def candidate_client(api_client, candidate):
    api_client.force_authenticate(user=candidate)
    return api_client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client
