"""
Audit logging for security-critical operations.

Authentication, denied access and every inventory or prescription mutation
is written to the ``audit`` logger as one JSON line.

LOGGING SENSITIVE DATA: passwords and tokens are never logged.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from hcc.models.user import User

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLog:
    """Central audit logging for security-critical events."""

    @staticmethod
    def log_authentication(
        action: str,  # "login", "register"
        email: str,
        ip_address: str,
        success: bool,
        reason: str = "",
    ):
        """
        Log authentication events.

        Usage:
            AuditLog.log_authentication("login", "user@example.com", "192.168.1.1", True)
            AuditLog.log_authentication("login", "user@example.com", "192.168.1.1", False, reason="bad password")
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"auth.{action}",
            "email": email,
            "ip_address": ip_address,
            "success": success,
        }

        if reason and not success:
            log_entry["reason"] = reason

        audit_logger.info(json.dumps(log_entry))

    @staticmethod
    def log_action(
        action: str,  # "create", "dispense", "reject", "delete", "update", "book", "cancel"
        resource_type: str,  # "prescription", "drug", "appointment", "slot", "user"
        resource_id: int,
        user: User,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Log business-critical actions with who, what and when.

        Usage:
            AuditLog.log_action("dispense", "prescription_drug", 12, current_user, changes={"quantity": 2})
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"{resource_type}.{action}",
            "user_id": user.id,
            "user_role": user.role,
            "resource_id": resource_id,
        }

        if changes:
            log_entry["changes"] = changes

        audit_logger.info(json.dumps(log_entry, default=str))

    @staticmethod
    def log_access_denied(
        action: str,  # "read", "write", "delete"
        resource_type: str,
        resource_id: Any,
        user_id: int,
        reason: str,
    ):
        """
        Log denied access attempts, e.g. a student reading another
        student's appointments.
        """
        log_entry = {
            "timestamp": _now(),
            "event_severity": "WARNING",
            "event_type": "access_denied",
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "user_id": user_id,
            "reason": reason,
        }

        audit_logger.warning(json.dumps(log_entry, default=str))
