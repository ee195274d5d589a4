"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- Settings tuned for fast tests (low bcrypt cost, short timeouts)
- A directory of organizations/applications covering each signup policy
- Memory-backed services with mock code senders
- A FastAPI test client wired to those services
"""

from collections.abc import Callable, Generator
from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.memory import MemoryDirectory
from src.api.dependencies import Services, build_services
from src.api.main import create_app
from src.config.settings import Settings
from src.domain.models import Application, Organization, SignupItem


def make_directory() -> MemoryDirectory:
    """Organizations and applications used across the test suite."""
    organizations = [
        Organization(
            owner="admin",
            name="acme",
            display_name="Acme",
            default_avatar="https://cdn.example.com/acme.png",
            phone_prefix="1",
            tags=["staff|guest", "vip"],
            master_password="hunter2",
        ),
        Organization(owner="admin", name="OTT", phone_prefix="86"),
    ]
    base_items = [
        SignupItem(name="Username", required=True),
        SignupItem(name="Display name", required=False),
        SignupItem(name="Password", required=True),
        SignupItem(name="Phone"),
    ]
    applications = [
        Application(
            owner="admin",
            name="app-acme",
            organization="acme",
            homepage_url="https://acme.example.com",
            signup_items=base_items + [SignupItem(name="Email", required=True, rule="No verification")],
        ),
        Application(
            owner="admin",
            name="app-verified",
            organization="acme",
            signup_items=base_items + [SignupItem(name="Email", required=True, rule="Normal")],
        ),
        Application(owner="admin", name="app-closed", organization="acme", enable_signup=False),
        Application(
            owner="admin",
            name="app-incremental",
            organization="acme",
            signup_items=[
                SignupItem(name="Username", visible=False),
                SignupItem(name="ID", visible=False, rule="Incremental"),
                SignupItem(name="Email", rule="No verification"),
            ],
        ),
        Application(
            owner="admin",
            name="app-prompt",
            organization="acme",
            signup_items=[
                SignupItem(name="Username", required=True),
                SignupItem(name="Affiliation", prompted=True),
            ],
        ),
        Application(
            owner="admin",
            name="app-names",
            organization="acme",
            signup_items=[
                SignupItem(name="Username", required=True),
                SignupItem(name="Display name", required=True, rule="First, last"),
            ],
        ),
        Application(
            owner="admin",
            name="light-wallet",
            organization="OTT",
            signup_items=[
                SignupItem(name="Email", rule="Normal"),
                SignupItem(name="Phone"),
                SignupItem(name="ID", visible=False, rule="Incremental"),
            ],
        ),
    ]
    return MemoryDirectory(organizations=organizations, applications=applications)


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: no .env, cheap hashing, short provider timeout."""
    return Settings(_env_file=None, bcrypt_cost=4, provider_timeout_seconds=2.0)


@pytest.fixture
def directory() -> MemoryDirectory:
    return make_directory()


@pytest.fixture
def email_sender() -> Mock:
    return Mock()


@pytest.fixture
def sms_sender() -> Mock:
    return Mock()


@pytest.fixture
def services(
    settings: Settings, directory: MemoryDirectory, email_sender: Mock, sms_sender: Mock
) -> Generator[Services, None, None]:
    services = build_services(settings, directory=directory, email_sender=email_sender, sms_sender=sms_sender)
    yield services
    services.close()


@pytest.fixture
def app(services: Services) -> FastAPI:
    """Application wired to memory services without running the lifespan."""
    test_app = create_app()
    test_app.state.pool = None
    test_app.state.services = services
    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def sent_code(email_sender: Mock, sms_sender: Mock) -> Callable[[str], str]:
    """Look up the last code the mock senders delivered to a destination."""

    def lookup(destination: str) -> str:
        for sender in (email_sender, sms_sender):
            for call in reversed(sender.send_verification_code.call_args_list):
                if call.args[0] == destination:
                    return call.args[1]
        raise AssertionError(f"No code sent to {destination}")

    return lookup
