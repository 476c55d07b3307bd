from dataclasses import dataclass, field
from typing import List, Optional

from ...application.ports.notification_gateway import NotificationGateway


@dataclass
class SentMessage:
    destination: str
    body: str
    code: Optional[str] = None
    subject: Optional[str] = None


@dataclass
class CaptureGateway(NotificationGateway):
    """Keeps every message in memory instead of delivering it."""

    sent: List[SentMessage] = field(default_factory=list)

    def send_code(self, destination: str, code: str) -> bool:
        self.sent.append(SentMessage(destination=destination, body=code, code=code))
        return True

    def send_message(self, destination: str, message: str, subject: Optional[str] = None) -> bool:
        self.sent.append(SentMessage(destination=destination, body=message, subject=subject))
        return True

    def last_code_for(self, destination: str) -> Optional[str]:
        for msg in reversed(self.sent):
            if msg.destination == destination and msg.code is not None:
                return msg.code
        return None

    def messages_for(self, destination: str) -> List[SentMessage]:
        return [m for m in self.sent if m.destination == destination]
