"""
Structured audit trail of event applications.

An ``AuditLog`` is handed to the simulator for a run instead of living in a
global. Consumers can read the collected records afterwards or subscribe to
receive each record as it is written.
"""

import logging
from datetime import datetime
from typing import Callable, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

AuditSubscriber = Callable[["AuditRecord"], None]


class AuditRecord(BaseModel):
    """One event application on one entity."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(..., description="Identifier of the applied event")
    event_type: str = Field(..., description="Event type label")
    entity_id: str = Field(..., description="Entity the event was applied to")
    amount: float = Field(..., description="Amount the event resolved to")
    timestamp: datetime = Field(..., description="Simulated time of the application")
    period_index: int = Field(..., ge=0, description="Index of the period")
    changed: bool = Field(..., description="Whether a new version was produced")


class AuditLog:
    """In-memory audit sink with optional streaming subscribers."""

    def __init__(self) -> None:
        self._records: List[AuditRecord] = []
        self._subscribers: List[AuditSubscriber] = []

    def record(self, record: AuditRecord) -> None:
        """Store a record and forward it to subscribers."""
        self._records.append(record)
        logger.debug(
            f"Event {record.event_id} ({record.event_type}) on {record.entity_id} "
            f"amount {record.amount:.2f} in period {record.period_index}"
        )
        for subscriber in self._subscribers:
            subscriber(record)

    def subscribe(self, subscriber: AuditSubscriber) -> None:
        self._subscribers.append(subscriber)

    @property
    def records(self) -> List[AuditRecord]:
        return list(self._records)

    def for_entity(self, entity_id: str) -> List[AuditRecord]:
        return [r for r in self._records if r.entity_id == entity_id]

    def for_period(self, period_index: int) -> List[AuditRecord]:
        return [r for r in self._records if r.period_index == period_index]

    def last(self) -> Optional[AuditRecord]:
        return self._records[-1] if self._records else None

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[AuditRecord]:
        return iter(list(self._records))
