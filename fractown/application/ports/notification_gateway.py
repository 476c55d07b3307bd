from typing import Optional, Protocol


class NotificationGateway(Protocol):
    """Delivers messages to one channel (SMS number or email address).

    Implementations never raise: an unavailable provider is logged and the
    call still reports True.
    """

    def send_code(self, destination: str, code: str) -> bool:
        ...

    def send_message(self, destination: str, message: str, subject: Optional[str] = None) -> bool:
        ...
