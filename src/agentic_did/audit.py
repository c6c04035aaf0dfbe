"""AuditLogger — JSONL audit trail for trust-protocol events.

Every challenge issued and every presentation decision (accepted, or
rejected with its error kind) is appended as a single JSON line to the
configured log file. Without a file path the events go to a bounded in-memory
buffer (oldest events dropped first) that can be drained via
:meth:`AuditLogger.drain_buffer`.

Audit events never carry proofs, attestations or tokens, only their
identifiers.
"""
from __future__ import annotations

import datetime
import json
import threading
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

from agentic_did.config import utc_now

CHALLENGE_ISSUED = "challenge_issued"
CHALLENGE_REFUSED = "challenge_refused"
PRESENTATION_ACCEPTED = "presentation_accepted"
PRESENTATION_REJECTED = "presentation_rejected"


@dataclass
class AuditEvent:
    """A single auditable protocol event.

    Parameters
    ----------
    event_type:
        Short snake_case string identifying the event.
    subject_id:
        The subject involved, or ``"-"`` when none is known yet.
    audience:
        The audience of the challenge involved.
    details:
        Arbitrary key-value metadata about the event.
    timestamp:
        UTC datetime of the event. Defaults to now.
    """

    event_type: str
    subject_id: str
    audience: str = ""
    details: dict[str, object] = field(default_factory=dict)
    timestamp: datetime.datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary suitable for JSON encoding."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type,
            "subject_id": self.subject_id,
            "audience": self.audience,
            "details": self.details,
        }


class AuditLogger:
    """Append-only JSONL audit logger.

    Thread-safe. Each call to :meth:`log` appends one JSON line to the
    configured file path (or to the in-memory buffer if no path is set).

    Parameters
    ----------
    log_path:
        Path to the JSONL log file. Parent directories are created
        automatically. If None, events are buffered in memory only.
    max_buffered:
        Capacity of the in-memory buffer; once full, the oldest events
        are discarded.
    """

    def __init__(self, log_path: Path | None = None, max_buffered: int = 10_000) -> None:
        if max_buffered < 1:
            raise ValueError("max_buffered must be at least 1.")
        self._log_path = log_path
        self._buffer: deque[str] = deque(maxlen=max_buffered)
        self._lock = threading.Lock()

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, event: AuditEvent) -> None:
        """Append *event* to the log."""
        line = json.dumps(event.to_dict(), separators=(",", ":"), default=str)
        with self._lock:
            if self._log_path is not None:
                with self._log_path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            else:
                self._buffer.append(line)

    def log_event(
        self,
        event_type: str,
        subject_id: str,
        audience: str = "",
        **details: object,
    ) -> None:
        """Log a simple event without constructing :class:`AuditEvent`."""
        self.log(
            AuditEvent(
                event_type=event_type,
                subject_id=subject_id,
                audience=audience,
                details=dict(details),
            )
        )

    # ------------------------------------------------------------------
    # Convenience event loggers
    # ------------------------------------------------------------------

    def log_challenge(self, audience: str, caller_id: str, issued: bool, **kwargs: object) -> None:
        """Log a challenge_issued or challenge_refused event."""
        self.log_event(
            CHALLENGE_ISSUED if issued else CHALLENGE_REFUSED,
            subject_id="-",
            audience=audience,
            caller_id=caller_id,
            **kwargs,
        )

    def log_decision(
        self,
        subject_id: str,
        audience: str,
        accepted: bool,
        **kwargs: object,
    ) -> None:
        """Log a presentation_accepted or presentation_rejected event."""
        self.log_event(
            PRESENTATION_ACCEPTED if accepted else PRESENTATION_REJECTED,
            subject_id=subject_id,
            audience=audience,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Buffer access
    # ------------------------------------------------------------------

    def drain_buffer(self) -> list[str]:
        """Return and clear the in-memory event buffer (oldest first)."""
        with self._lock:
            events = list(self._buffer)
            self._buffer.clear()
        return events

    def read_log(self, tail: int | None = None) -> list[dict[str, object]]:
        """Read events back as dictionaries.

        Parameters
        ----------
        tail:
            If provided, return only the last *tail* events.

        Returns
        -------
        list[dict[str, object]]
            Parsed event dictionaries in chronological order.
        """
        with self._lock:
            if self._log_path is None or not self._log_path.exists():
                lines = list(self._buffer)
            else:
                lines = self._log_path.read_text(encoding="utf-8").splitlines()

        parsed: list[dict[str, object]] = []
        for line in lines:
            stripped = line.strip()
            if not stripped:
                continue
            try:
                parsed.append(json.loads(stripped))
            except json.JSONDecodeError:
                continue

        if tail is not None:
            return parsed[-tail:]
        return parsed


__all__ = [
    "AuditEvent",
    "AuditLogger",
    "CHALLENGE_ISSUED",
    "CHALLENGE_REFUSED",
    "PRESENTATION_ACCEPTED",
    "PRESENTATION_REJECTED",
]
