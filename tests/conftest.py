"""
Shared fixtures: a fresh app (and in-memory store) per test, built from
TestingConfig, plus Flask test clients for each demo server.
"""

import pytest

import app as vulnerable_module
import app_secured
import bank_app


@pytest.fixture
def vulnerable_app():
    return vulnerable_module.create_app('testing')


@pytest.fixture
def vulnerable_client(vulnerable_app):
    return vulnerable_app.test_client()


@pytest.fixture
def secured_app():
    return app_secured.create_app('testing')


@pytest.fixture
def secured_client(secured_app):
    return secured_app.test_client()


@pytest.fixture
def bank():
    return bank_app.create_app('testing')


@pytest.fixture
def bank_client(bank):
    return bank.test_client()


@pytest.fixture
def csrf_token(bank_client):
    """Log the bank client in and return the issued CSRF token."""
    resp = bank_client.post('/login')
    assert resp.status_code == 200
    return resp.get_json()['csrfToken']
