import json
import logging
from typing import Optional, Dict, Any

from ...application.ports.audit_logger import AuditLogger
from ...utils import hash_phone_number, utcnow


class StdAuditLogger(AuditLogger):
    """Writes one `AUDIT: {...}` JSON line per security event.

    The subject (phone number or admin username) is hashed before it is logged.
    """

    def __init__(self, logger_name: str = "fractown.audit") -> None:
        self._logger = logging.getLogger(logger_name)

    def log(self, action: str, subject: str, user_id: Optional[str] = None, request_id: Optional[str] = None, ip_address: Optional[str] = None, success: bool = True, details: Optional[Dict[str, Any]] = None) -> None:
        entry = {
            "timestamp": utcnow().isoformat(),
            "action": action,
            "subject_hash": hash_phone_number(subject),
            "user_id": user_id,
            "request_id": request_id,
            "ip_address": ip_address,
            "success": success,
            "details": details or {},
        }
        if success:
            self._logger.info(f"AUDIT: {json.dumps(entry)}")
        else:
            self._logger.warning(f"AUDIT: {json.dumps(entry)}")
