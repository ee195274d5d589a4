"""
Integration tests for the lightweight (OTT) signup flow.

Runs the real services over memory adapters through /api/ott, checking
the numeric response codes machine clients rely on.
"""

import threading
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from src.adapters.memory import MemoryDirectory
from src.domain.models import Application, SignupItem


def ott_send(client: TestClient, **fields) -> dict:
    payload = {"app_id": "light-wallet"}
    payload.update(fields)
    return client.post("/api/ott/send-verification-code", json=payload).json()


def ott_signup(client: TestClient, **fields) -> dict:
    payload = {"app_id": "light-wallet", "pwd": "secret123"}
    payload.update(fields)
    return client.post("/api/ott/signup", json=payload).json()


class TestOTTSendVerificationCode:
    def test_email_returns_timer(self, client: TestClient, email_sender: Mock) -> None:
        body = ott_send(client, type=1, dest="bot@example.com")

        assert body == {"code": 200, "msg": "", "body": {"timer": 60}}
        assert email_sender.send_verification_code.call_args[0][0] == "bot@example.com"

    def test_phone_with_prefix(self, client: TestClient, sms_sender: Mock) -> None:
        assert ott_send(client, type=0, prefix="86", dest="13800001111")["code"] == 200
        assert sms_sender.send_verification_code.call_args[0][0] == "+8613800001111"

    def test_invalid_email_is_302(self, client: TestClient) -> None:
        assert ott_send(client, type=1, dest="not-an-email")["code"] == 302

    def test_phone_without_prefix_is_301(self, client: TestClient) -> None:
        assert ott_send(client, type=0, dest="13800001111")["code"] == 301

    def test_unknown_type_is_203(self, client: TestClient) -> None:
        assert ott_send(client, type=5, dest="bot@example.com")["code"] == 203

    def test_unknown_application_is_203(self, client: TestClient) -> None:
        assert ott_send(client, app_id="no-such-app", type=1, dest="bot@example.com")["code"] == 203

    def test_provider_failure_is_300(self, client: TestClient, email_sender: Mock) -> None:
        email_sender.send_verification_code.side_effect = RuntimeError("smtp rejected")

        assert ott_send(client, type=1, dest="bot@example.com")["code"] == 300

    def test_provider_timeout_is_201(self, client: TestClient, email_sender: Mock) -> None:
        release = threading.Event()
        email_sender.send_verification_code.side_effect = lambda *_: release.wait(10)

        try:
            assert ott_send(client, type=1, dest="bot@example.com")["code"] == 201
        finally:
            release.set()


class TestOTTSignup:
    def test_email_signup(self, client: TestClient, sent_code) -> None:
        ott_send(client, type=1, dest="bot@example.com")

        body = ott_signup(client, type=1, identity="bot@example.com", verification_code=sent_code("bot@example.com"))

        assert body["code"] == 200
        owner, name = body["body"]["user_id"].split("/")
        assert owner == "OTT"
        assert name

    def test_phone_signup_stores_international_number(self, client: TestClient, sent_code) -> None:
        ott_send(client, type=0, prefix="86", dest="13800001111")

        body = ott_signup(
            client, type=0, prefix="86", identity="13800001111", verification_code=sent_code("+8613800001111")
        )
        assert body["code"] == 200

        again = ott_signup(client, type=0, prefix="86", identity="13800001111", verification_code="000000")
        assert again["code"] == 203
        assert again["msg"] == "Phone already exists"

    def test_missing_code_is_208_and_nothing_persisted(self, client: TestClient) -> None:
        body = ott_signup(client, type=1, identity="bot@example.com")

        assert body["code"] == 208
        assert body["msg"] == "Email: Code has not been sent yet!"
        again = ott_signup(client, type=1, identity="bot@example.com")
        assert again["code"] == 208

    def test_wrong_code_is_208(self, client: TestClient, sent_code) -> None:
        ott_send(client, type=1, dest="bot@example.com")
        wrong = "000000" if sent_code("bot@example.com") != "000000" else "111111"

        assert ott_signup(client, type=1, identity="bot@example.com", verification_code=wrong)["code"] == 208

    def test_second_signup_with_same_email_is_203(self, client: TestClient, sent_code) -> None:
        ott_send(client, type=1, dest="bot@example.com")
        code = sent_code("bot@example.com")
        assert ott_signup(client, type=1, identity="bot@example.com", verification_code=code)["code"] == 200

        again = ott_signup(client, type=1, identity="bot@example.com", verification_code=code)

        assert again["code"] == 203
        assert again["msg"] == "Email already exists"

    def test_short_password_is_203(self, client: TestClient) -> None:
        body = ott_signup(client, type=1, identity="bot@example.com", pwd="123")

        assert body["code"] == 203
        assert body["msg"] == "Password must have at least 6 characters"

    def test_invalid_type_is_203(self, client: TestClient) -> None:
        assert ott_signup(client, type=9, identity="bot@example.com")["code"] == 203

    def test_unknown_application_is_207(self, client: TestClient) -> None:
        assert ott_signup(client, app_id="no-such-app", type=1, identity="bot@example.com")["code"] == 207

    def test_malformed_body_is_203(self, client: TestClient) -> None:
        response = client.post("/api/ott/signup", json={"app_id": "light-wallet"})

        assert response.status_code == 200
        assert response.json() == {"code": 203, "msg": "Invalid parameter", "body": None}


class TestOTTContactVerification:
    """The chosen channel is verified even when the application hides it."""

    @pytest.fixture
    def phone_only_app(self, directory: MemoryDirectory) -> str:
        directory.add_application(
            Application(owner="admin", name="light-open", organization="OTT", signup_items=[SignupItem(name="Phone")])
        )
        return "light-open"

    def test_hidden_email_still_requires_code(self, client: TestClient, phone_only_app: str, sent_code) -> None:
        body = ott_signup(client, app_id=phone_only_app, type=1, identity="victim@example.com")

        assert body["code"] == 208
        ott_send(client, app_id=phone_only_app, type=1, dest="victim@example.com")
        retry = ott_signup(
            client,
            app_id=phone_only_app,
            type=1,
            identity="victim@example.com",
            verification_code=sent_code("victim@example.com"),
        )
        assert retry["code"] == 200

    def test_plus_sign_prefix_detects_existing_phone(self, client: TestClient, sent_code) -> None:
        ott_send(client, type=0, prefix="86", dest="13800001111")
        first = ott_signup(
            client, type=0, prefix="86", identity="13800001111", verification_code=sent_code("+8613800001111")
        )
        assert first["code"] == 200

        ott_send(client, type=0, prefix="+86", dest="13800001111")
        again = ott_signup(
            client, type=0, prefix="+86", identity="13800001111", verification_code=sent_code("+8613800001111")
        )

        assert again["code"] == 203
        assert again["msg"] == "Phone already exists"
