import pytest
import requests

from bolt_reviews.models import Review
from bolt_reviews.utils import email


class FakeResponse:
    def __init__(self, status_code=200, text="Queued"):
        self.status_code = status_code
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400


@pytest.fixture()
def mailgun(monkeypatch):
    monkeypatch.setattr(email, "MAILGUN_API_KEY", "key-test")
    monkeypatch.setattr(email, "MAILGUN_DOMAIN", "mg.example.com")
    monkeypatch.setattr(email, "EMAIL_FROM_ADDRESS", "reviews@mg.example.com")
    sent = []

    def fake_post(url, auth, data, timeout):
        sent.append({"url": url, "auth": auth, "data": data})
        return FakeResponse()

    monkeypatch.setattr(email.requests, "post", fake_post)
    return sent


def _review():
    return Review(rating=4, title="Nice <b>mug</b>", content="Holds coffee", customer_name="Pat")


def test_notification_is_posted_to_mailgun(mailgun):
    assert email.send_new_review_notification("owner@example.com", "demo.myshopify.com", "Blue Mug", _review())

    message = mailgun[0]
    assert message["url"] == "https://api.mailgun.net/v3/mg.example.com/messages"
    assert message["auth"] == ("api", "key-test")
    assert message["data"]["to"] == "owner@example.com"
    assert message["data"]["subject"] == "New 4-star review pending on Blue Mug"
    assert "Nice &lt;b&gt;mug&lt;/b&gt;" in message["data"]["html"]


def test_unconfigured_mailgun_sends_nothing(monkeypatch):
    monkeypatch.setattr(email, "MAILGUN_API_KEY", None)
    monkeypatch.setattr(email.requests, "post", lambda *a, **kw: pytest.fail("should not post"))

    assert email.send_email("owner@example.com", "s", "<p>h</p>") is False


def test_rejected_or_failed_delivery_returns_false(mailgun, monkeypatch):
    monkeypatch.setattr(email.requests, "post", lambda *a, **kw: FakeResponse(401, "Forbidden"))
    assert email.send_email("owner@example.com", "s", "<p>h</p>") is False

    def unreachable(*args, **kwargs):
        raise requests.ConnectionError("mailgun down")

    monkeypatch.setattr(email.requests, "post", unreachable)
    assert email.send_email("owner@example.com", "s", "<p>h</p>") is False
