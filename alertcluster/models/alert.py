"""
Alert data models.

Alerts are owned by the repository; the clustering engine only reads them.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class AlertThread(BaseModel):
    """Chat thread where an alert is discussed."""

    channel_id: str = Field(..., min_length=1)
    thread_id: str = Field(..., min_length=1)


class Alert(BaseModel):
    """
    Security alert as seen by the similarity and clustering engine.

    An empty embedding means the embedding has not been computed yet. Such
    alerts are skipped by duplicate matching and clustering, never rejected.
    """

    id: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Alert identifier"
    )

    title: str = Field(default="", max_length=1000)

    description: str = Field(default="", max_length=10000)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    embedding: list[float] = Field(
        default_factory=list,
        description="Fixed-length embedding vector (empty if not yet computed)"
    )

    ticket_id: Optional[str] = Field(
        default=None,
        description="Bound ticket (None or empty string means unbound)"
    )

    data: Any = Field(
        default=None,
        description="Opaque alert payload, used only for keyword filtering"
    )

    slack_thread: Optional[AlertThread] = None

    @field_validator("created_at")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC so window comparisons are consistent."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def is_unbound(self) -> bool:
        """True when the alert is not associated with any ticket."""
        return not self.ticket_id

    @property
    def has_embedding(self) -> bool:
        return len(self.embedding) > 0

    def serialized_data(self) -> str:
        """
        JSON serialization of the payload used for keyword matching.

        Returns:
            Deterministic JSON string, or "" when the alert has no payload
        """
        if self.data is None:
            return ""
        return json.dumps(self.data, sort_keys=True, default=str, ensure_ascii=False)

    def sort_key(self) -> tuple[datetime, str]:
        """Stable ordering: ascending creation time, then id."""
        return (self.created_at, self.id)
