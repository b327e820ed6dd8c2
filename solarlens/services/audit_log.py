"""
Audit trail for AI extraction attempts.

Every attempt (raw text sample, success with token accounting, parse failure,
API error) is recorded against the document's correlation id. Recording is
best-effort: a failing sink is logged and never interrupts extraction.
"""
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class AuditEntry:
    """One recorded extraction event."""

    document_type: str
    event: str
    document_id: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "document_type": self.document_type,
            "event": self.event,
            "document_id": self.document_id,
            "data": self.data,
        }


class ExtractionAuditLog(ABC):
    """Sink for extraction audit entries."""

    def record(self, document_type: str, event: str, data: Dict[str, Any], document_id: str) -> None:
        """Record an entry; errors from the sink are logged and dropped."""
        entry = AuditEntry(document_type=document_type, event=event, document_id=document_id, data=data)
        try:
            self._write(entry)
        except Exception as e:
            logger.error(
                "audit_log_write_failed",
                document_type=document_type,
                event=event,
                document_id=document_id,
                error=str(e),
            )

    @abstractmethod
    def _write(self, entry: AuditEntry) -> None:
        """Persist a single entry."""
        pass


class JsonFileAuditLog(ExtractionAuditLog):
    """Writes each entry to its own JSON file under a log directory."""

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)

    def _write(self, entry: AuditEntry) -> None:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        stamp = entry.timestamp.strftime("%Y-%m-%dT%H-%M-%S-%f")
        file_name = f"{stamp}_{entry.document_type}_{entry.event}_{entry.document_id}.json"
        path = self.log_dir / file_name
        path.write_text(json.dumps(entry.to_dict(), indent=2, default=str), encoding="utf-8")
        logger.info("ai_extraction_logged", document_type=entry.document_type, event=entry.event, file=file_name)


class MemoryAuditLog(ExtractionAuditLog):
    """Keeps entries in memory; used by tests and local tooling."""

    def __init__(self):
        self.entries: List[AuditEntry] = []

    def _write(self, entry: AuditEntry) -> None:
        self.entries.append(entry)

    def events(self, document_id: Optional[str] = None) -> List[str]:
        return [e.event for e in self.entries if document_id is None or e.document_id == document_id]
