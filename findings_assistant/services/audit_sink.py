# audit_sink.py
"""Audit record emission through the logging stack."""

import logging

from findings_assistant.core import AuditSink
from findings_assistant.core.models import AuditRecord

audit_logger = logging.getLogger("findings_assistant.audit")


class LoggingAuditSink(AuditSink):
    """Writes one structured log line per processed query"""

    def __init__(self, logger: logging.Logger = audit_logger):
        self.logger = logger

    def emit(self, record: AuditRecord) -> None:
        self.logger.info(
            "query processed",
            extra={
                "session_id": record.session_id,
                "query_text": record.query_text,
                "strategy": record.strategy,
                "elapsed_ms": round(record.elapsed_ms, 2),
                "query_id": record.query_id,
                "outcome": record.outcome,
            },
        )
