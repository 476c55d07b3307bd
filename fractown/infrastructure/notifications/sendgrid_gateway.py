import logging
from typing import Optional

import httpx

from ...application.ports.notification_gateway import NotificationGateway
from ...application.messages import OTP_EMAIL_SUBJECT, BRAND, otp_email

logger = logging.getLogger(__name__)

SENDGRID_MAIL_URL = "https://api.sendgrid.com/v3/mail/send"


class SendGridEmailGateway(NotificationGateway):
    """Email through the SendGrid v3 mail endpoint, same fallback rules as SMS."""

    def __init__(self, api_key: str = "", from_email: str = "noreply@fractown.com",
                 timeout: float = 10.0, client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self.from_email = from_email
        self.client = client or httpx.Client(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def send_code(self, destination: str, code: str) -> bool:
        return self.send_message(destination, otp_email(code), subject=OTP_EMAIL_SUBJECT)

    def send_message(self, destination: str, message: str, subject: Optional[str] = None) -> bool:
        subject = subject or BRAND
        if not self.api_key:
            logger.info(f"[DEVELOPMENT] Email to {destination}: {subject} - {message}")
            return True
        payload = {
            "personalizations": [{"to": [{"email": destination}]}],
            "from": {"email": self.from_email},
            "subject": subject,
            "content": [{"type": "text/plain", "value": message}],
        }
        try:
            response = self.client.post(
                SENDGRID_MAIL_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
            logger.info(f"Email sent to {destination}")
        except Exception as e:
            logger.error(f"SendGrid error: {e}")
            logger.warning(f"[FALLBACK] Email to {destination}: {subject} - {message}")
        return True
