"""Email rendering and SMTP delivery."""

import smtplib

import pytest

from airyze.services.email_service import (
    EmailAuthError,
    EmailNetworkError,
    EmailNotConfiguredError,
    EmailSendError,
    Mailer,
    alert_subject,
    markdown_to_html,
    render_alert_email,
)


class FakeSMTP:
    """Records the SMTP conversation; ``fail_with`` is raised from login."""

    instances = []

    def __init__(self, host, port, timeout=None, fail_with=None):
        self.host = host
        self.port = port
        self.fail_with = fail_with
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append(("login", user))

    def sendmail(self, sender, recipients, message):
        self.calls.append(("sendmail", sender, tuple(recipients), message))


def _mailer(fail_with=None, port=587, **kwargs):
    FakeSMTP.instances = []
    factory = lambda host, port, timeout=None: FakeSMTP(host, port, timeout, fail_with)  # noqa: E731
    options = {"host": "smtp.test", "port": port, "user": "alerts@test.com", "password": "pw", **kwargs}
    return Mailer(smtp_factory=factory, **options)


def test_markdown_subset_is_converted_after_escaping():
    html = str(markdown_to_html("**Stay inside** and use `N95`\n1. Close windows\n\n<script>x</script>"))
    assert "<strong>Stay inside</strong>" in html
    assert "<code" in html and "N95</code>" in html
    assert "<li>Close windows</li>" in html
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert str(markdown_to_html(None)) == ""


def test_subjects():
    assert alert_subject("daily", "Lahore") == "Daily AQI Report for Lahore"
    assert alert_subject("instant", "Lahore") == "Your AQI Report for Lahore"
    assert alert_subject("change", "Lahore") == "AQI Alert: Air Quality Changed in Lahore"


def test_render_alert_email():
    subject, html = render_alert_email(
        name="Ayesha <b>",
        city="Karachi",
        aqi=4,
        kind="change",
        recommendations=[f"Tip {n}" for n in range(10)],
        personal_note="Given your asthma, please take extra precautions today.",
        health_sections=[{"title": "For your Asthma:", "advice": ["Stay indoors"]}],
        dashboard_url="http://api.test/auth/track-alert/3",
    )
    assert subject == "AQI Alert: Air Quality Changed in Karachi"
    assert "Ayesha &lt;b&gt;" in html
    assert "AQI: 4" in html
    assert "Tip 5" in html and "Tip 6" not in html
    assert "Personal Health Alert" in html
    assert "For your Asthma:" in html
    assert 'href="http://api.test/auth/track-alert/3"' in html
    assert "Health Recommendations:" in html


def test_render_with_ai_prose():
    _, html = render_alert_email(
        name="Bilal", city="Lahore", aqi=2, kind="daily", recommendations=[],
        personalized=True, prose="Hi **Bilal**!\n\nEnjoy the day.",
    )
    assert "Hi <strong>Bilal</strong>!" in html
    assert "Personalized Recommendations:" in html
    assert "your air quality update for" not in html


def test_send_over_smtp():
    mailer = _mailer()
    mailer.send("user@test.com", "Subject", "<p>Hi</p>")
    smtp = FakeSMTP.instances[0]
    assert smtp.calls[0] == "starttls"
    assert smtp.calls[1] == ("login", "alerts@test.com")
    kind, sender, recipients, message = smtp.calls[2]
    assert sender == "alerts@test.com"
    assert recipients == ("user@test.com",)
    assert "Subject: Subject" in message


def test_implicit_tls_port_skips_starttls():
    mailer = _mailer(port=465)
    mailer.send("user@test.com", "Subject", "<p>Hi</p>")
    assert "starttls" not in FakeSMTP.instances[0].calls


def test_mock_mode_does_not_connect():
    mailer = _mailer(mock_mode=True, user="", password="")
    mailer.send("user@test.com", "Subject", "<p>Hi</p>")
    assert FakeSMTP.instances == []
    assert mailer.verify() is True


def test_missing_credentials():
    mailer = _mailer(user="", password="")
    with pytest.raises(EmailNotConfiguredError) as exc:
        mailer.send("user@test.com", "Subject", "<p>Hi</p>")
    assert exc.value.status_code == 503
    assert mailer.verify() is False


@pytest.mark.parametrize("error,expected", [
    (smtplib.SMTPAuthenticationError(535, b"bad credentials"), EmailAuthError),
    (smtplib.SMTPServerDisconnected("gone"), EmailNetworkError),
    (ConnectionRefusedError(), EmailNetworkError),
    (TimeoutError(), EmailNetworkError),
    (smtplib.SMTPDataError(554, b"rejected"), EmailSendError),
])
def test_send_errors_are_classified(error, expected):
    with pytest.raises(expected):
        _mailer(fail_with=error).send("user@test.com", "Subject", "<p>Hi</p>")


def test_verify_reports_login_failure():
    assert _mailer().verify() is True
    assert _mailer(fail_with=smtplib.SMTPAuthenticationError(535, b"no")).verify() is False
