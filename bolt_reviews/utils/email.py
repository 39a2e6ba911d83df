import os
import html
import logging
import requests

MAILGUN_API_KEY = os.getenv("MAILGUN_API_KEY")
MAILGUN_DOMAIN = os.getenv("MAILGUN_DOMAIN")
MAILGUN_API_BASE = os.getenv("MAILGUN_API_BASE", "https://api.mailgun.net/v3")
EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Bolt Reviews")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS") or (
    f"reviews@{MAILGUN_DOMAIN}" if MAILGUN_DOMAIN else None
)

logger = logging.getLogger(__name__)


def mailgun_configured() -> bool:
    return bool(MAILGUN_API_KEY and MAILGUN_DOMAIN and EMAIL_FROM_ADDRESS)


def send_email(to_email: str, subject: str, html_content: str, text_content: str | None = None) -> bool:
    """Merchant e-mail through Mailgun. False on any failure, never raises."""
    if not mailgun_configured():
        logger.warning("Merchant e-mail skipped, Mailgun is not configured | to=%s", to_email)
        return False

    message = {
        "from": f"{EMAIL_FROM_NAME} <{EMAIL_FROM_ADDRESS}>",
        "to": to_email,
        "subject": subject,
        "html": html_content,
    }
    if text_content:
        message["text"] = text_content

    try:
        response = requests.post(
            f"{MAILGUN_API_BASE}/{MAILGUN_DOMAIN}/messages",
            auth=("api", MAILGUN_API_KEY),
            data=message,
            timeout=10,
        )
    except requests.RequestException as e:
        logger.warning("Merchant e-mail not delivered | to=%s | error=%s", to_email, e)
        return False

    if not response.ok:
        logger.warning(
            "Merchant e-mail rejected by Mailgun | to=%s | status=%s | body=%s",
            to_email,
            response.status_code,
            response.text[:200],
        )
        return False

    return True


def send_new_review_notification(to_email: str, shop: str, product_title: str, review) -> bool:
    """Tell the merchant a storefront review is waiting for moderation."""
    stars = "★" * review.rating + "☆" * (5 - review.rating)
    subject = f"New {review.rating}-star review pending on {product_title}"

    html_content = f"""
    <h2>New review on {html.escape(shop)}</h2>
    <p><strong>{html.escape(product_title)}</strong> {stars}</p>
    <p><strong>{html.escape(review.title)}</strong> by {html.escape(review.customer_name)}</p>
    <p>{html.escape(review.content)}</p>
    <p>Open the Bolt Reviews app to publish or reject it.</p>
    """

    text_content = (
        f"New review on {shop}\n"
        f"{product_title} - {review.rating}/5\n"
        f"{review.title} by {review.customer_name}\n\n"
        f"{review.content}\n"
    )

    return send_email(
        to_email=to_email,
        subject=subject,
        html_content=html_content,
        text_content=text_content,
    )
