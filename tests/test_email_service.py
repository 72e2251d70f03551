import smtplib
from unittest.mock import MagicMock, patch

import pytest

from lms.services import email_service


@pytest.fixture
def smtp_env(monkeypatch):
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_FROM_EMAIL", "no-reply@example.com")
    monkeypatch.setenv("SMTP_USER", "mailer")
    monkeypatch.setenv("SMTP_PASSWORD", "mailer-password")
    monkeypatch.setenv("SMTP_SEND_RETRIES", "3")


def test_login_otp_email_contents(smtp_env):
    with patch("lms.services.email_service.smtplib.SMTP") as mock_smtp:
        assert email_service.deliver_login_otp("a@x.com", "Ann", "042917") is True

    smtp = mock_smtp.return_value.__enter__.return_value
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("mailer", "mailer-password")
    message = smtp.send_message.call_args.args[0]
    assert message["To"] == "a@x.com"
    assert message["Subject"] == "Login Verification Code"
    text = message.get_body(preferencelist=("plain",)).get_content()
    assert "042917" in text
    assert "expire in 10 minutes" in text


def test_delivery_retries_transient_failures(smtp_env):
    with patch("lms.services.email_service.smtplib.SMTP") as mock_smtp, patch(
        "lms.services.email_service.time.sleep"
    ) as mock_sleep:
        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.send_message.side_effect = [smtplib.SMTPServerDisconnected("gone"), None]

        assert email_service.deliver_login_otp("a@x.com", "Ann", "123456") is True

    assert smtp.send_message.call_count == 2
    mock_sleep.assert_called_once()


def test_delivery_gives_up_after_retries(smtp_env):
    with patch("lms.services.email_service.smtplib.SMTP", side_effect=OSError("refused")) as mock_smtp, patch(
        "lms.services.email_service.time.sleep"
    ) as mock_sleep:
        assert email_service.deliver_login_otp("a@x.com", "Ann", "123456") is False

    assert mock_smtp.call_count == 3
    assert mock_sleep.call_count == 2


def test_delivery_without_smtp_config_does_not_raise(monkeypatch):
    monkeypatch.delenv("SMTP_HOST", raising=False)
    smtp = MagicMock()

    with patch("lms.services.email_service.smtplib.SMTP", smtp):
        assert email_service.deliver_login_otp("a@x.com", "Ann", "123456") is False

    smtp.assert_not_called()


def test_delivery_failure_does_not_log_code(smtp_env, caplog):
    with patch("lms.services.email_service.smtplib.SMTP", side_effect=OSError("refused")), patch(
        "lms.services.email_service.time.sleep"
    ):
        email_service.deliver_login_otp("a@x.com", "Ann", "918273")

    assert "918273" not in caplog.text
