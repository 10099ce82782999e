"""Tests for the SMTP helper."""

import smtplib

import pytest

from utils import emailer


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        pass

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


class RefusingSMTP(FakeSMTP):
    def send_message(self, msg):
        raise smtplib.SMTPRecipientsRefused({msg["To"]: (550, b"no such user")})


@pytest.fixture
def smtp_app(app):
    app.config.update(SMTP_HOST="smtp.test", SMTP_FROM_EMAIL="bookings@example.com")
    FakeSMTP.sent = []
    return app


def test_not_configured(app):
    assert emailer.send_email("a@example.com", "Hi", "Body") == (False, "Email not configured")


def test_sends_message(smtp_app, monkeypatch):
    monkeypatch.setattr(emailer.smtplib, "SMTP", FakeSMTP)
    assert emailer.send_email("a@example.com", "Hi", "Body") == (True, None)
    assert FakeSMTP.sent[0]["To"] == "a@example.com"
    assert FakeSMTP.sent[0]["From"] == "bookings@example.com"


def test_smtp_error_is_returned(smtp_app, monkeypatch):
    monkeypatch.setattr(emailer.smtplib, "SMTP", RefusingSMTP)
    ok, error = emailer.send_email("a@example.com", "Hi", "Body")
    assert ok is False
    assert error


def test_missing_recipient(smtp_app):
    assert emailer.send_email("", "Hi", "Body") == (False, "No recipient")
