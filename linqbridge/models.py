"""Data models for jobs."""

import copy
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from dateutil.parser import isoparse


class JobStatus(str, Enum):
    """Job status values."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def _parse(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return isoparse(value)


# Wire key -> attribute name for timestamp fields
_TIMESTAMP_FIELDS = {
    "nextRetryAt": "next_retry_at",
    "createdAt": "created_at",
    "startedAt": "started_at",
    "completedAt": "completed_at",
    "failedAt": "failed_at",
}


class Job:
    """Represents a job record."""

    def __init__(
        self,
        id: int,
        type: str,
        payload: Any,
        priority: int = 1,
        status: JobStatus = JobStatus.PENDING,
        attempts: int = 0,
        last_error: Optional[str] = None,
        error: Optional[str] = None,
        next_retry_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        started_at: Optional[datetime] = None,
        completed_at: Optional[datetime] = None,
        failed_at: Optional[datetime] = None,
        result: Any = None,
    ):
        self.id = id
        self.type = type
        self.payload = payload
        self.priority = priority
        self.status = JobStatus(status) if isinstance(status, str) else status
        self.attempts = attempts
        self.last_error = last_error
        self.error = error
        self.next_retry_at = next_retry_at
        self.created_at = created_at
        self.started_at = started_at
        self.completed_at = completed_at
        self.failed_at = failed_at
        self.result = result

    def is_eligible(self, now: datetime) -> bool:
        """True when the job is pending and its retry delay has elapsed."""
        if self.status != JobStatus.PENDING:
            return False
        return self.next_retry_at is None or self.next_retry_at <= now

    def copy(self) -> "Job":
        """Snapshot that shares no mutable payload or result with this record."""
        fields = dict(self.__dict__)
        fields["payload"] = copy.deepcopy(self.payload)
        fields["result"] = copy.deepcopy(self.result)
        return Job(**fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert job to the camelCase wire format, omitting absent fields."""
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "payload": self.payload,
            "priority": self.priority,
            "status": self.status.value,
            "attempts": self.attempts,
        }
        if self.last_error is not None:
            data["lastError"] = self.last_error
        if self.error is not None:
            data["error"] = self.error
        for key, attr in _TIMESTAMP_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = _isoformat(value)
        if self.status == JobStatus.COMPLETED:
            data["result"] = self.result
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        """Build a job from its wire format."""
        kwargs = {attr: _parse(data.get(key)) for key, attr in _TIMESTAMP_FIELDS.items()}
        return cls(
            id=int(data["id"]),
            type=data["type"],
            payload=data.get("payload"),
            priority=data.get("priority", 1),
            status=JobStatus(data.get("status", JobStatus.PENDING.value)),
            attempts=data.get("attempts", 0),
            last_error=data.get("lastError"),
            error=data.get("error"),
            result=data.get("result"),
            **kwargs,
        )

    def __repr__(self) -> str:
        return f"Job(id={self.id}, type={self.type!r}, status={self.status.value})"
