"""
Audit logging for the metering core.
Records moderation rejections, entitlement denials, demo bypasses and
usage-ledger failures as structured JSON events.
"""

import logging
import json
from typing import Dict, Any, Optional
from pathlib import Path
from app.core.config import settings
from app.utils.time_utils import utcnow

class AuditLogger:
    """Structured audit events for metered actions"""

    def __init__(self, log_dir: Optional[str] = None):
        self.audit_logger = logging.getLogger('tonewise.audit')
        self.audit_logger.setLevel(logging.INFO)

        log_dir = log_dir if log_dir is not None else settings.AUDIT_LOG_DIR
        if log_dir and not self.audit_logger.handlers:
            self._configure_file_handler(Path(log_dir))

    def _configure_file_handler(self, log_dir: Path):
        """Write audit events to their own file, one JSON object per line"""
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / "audit_events.log")

        formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "event": %(message)s}',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        self.audit_logger.addHandler(handler)

    def log_event(self, event_type: str, user_id: Optional[str], details: Dict[str, Any], severity: str = "INFO"):
        """
        Log an audit event with structured data

        Args:
            event_type: Type of event (e.g., 'content_rejected', 'entitlement_denied')
            user_id: ID of user involved in event
            details: Additional event details
            severity: Log severity level
        """
        if not settings.LOG_AUDIT_EVENTS:
            return

        event_data = {
            "event_type": event_type,
            "user_id": user_id,
            "timestamp": utcnow().isoformat(),
            "severity": severity,
            "details": details,
        }

        level = getattr(logging, severity, logging.INFO)
        self.audit_logger.log(level, json.dumps(event_data, default=str))

    def log_content_rejected(self, user_id: str, feature: str, category: Optional[str], text: str):
        self.log_event(
            event_type="content_rejected",
            user_id=user_id,
            details={
                "feature": feature,
                "category": category,
                "input_preview": text[:100],  # Truncate for privacy
                "action": "request_rejected"
            },
            severity="WARNING"
        )

    def log_entitlement_denied(self, user_id: str, feature: str, tier: Optional[str], reason: str):
        self.log_event(
            event_type="entitlement_denied",
            user_id=user_id,
            details={
                "feature": feature,
                "tier": tier,
                "reason": reason,
                "action": "request_blocked"
            },
            severity="WARNING"
        )

    def log_demo_bypass(self, user_id: str, feature: str):
        self.log_event(
            event_type="demo_bypass",
            user_id=user_id,
            details={"feature": feature, "action": "quota_skipped"}
        )

    def log_usage_record_failed(self, user_id: str, feature: str, error_details: str):
        self.log_event(
            event_type="usage_record_failed",
            user_id=user_id,
            details={
                "feature": feature,
                "error": error_details,
                "action": "usage_undercounted"
            },
            severity="ERROR"
        )

# Global audit logger instance
audit_logger = AuditLogger()
