"""
Event processing seam used by the simulator.

The simulator never calls event methods directly; it goes through an
``EventProcessor`` so that callers can wrap or replace how events are
applied (for example to instrument or veto applications in tests).
"""

from datetime import datetime
from typing import List, Optional, Protocol

from finmodel.models.entity import Entity, EntityVersion
from finmodel.models.events import BaseEvent
from finmodel.models.flow import Flow


class EventProcessor(Protocol):
    """Applies events to versions and collects their side products."""

    def process(
        self, event: BaseEvent, version: EntityVersion, at: Optional[datetime] = None
    ) -> EntityVersion:
        """
        Apply one event to one version.

        Args:
            event: Event being applied
            version: Carrying version of the entity
            at: Simulated time stamped on a new version

        Returns:
            The successor version, or ``version`` itself for a no-op

        Raises:
            SimulationError: If the application breaks a business rule
        """
        ...

    def handle_flows(
        self, event: BaseEvent, before: EntityVersion, after: EntityVersion
    ) -> List[Flow]:
        """Flows implied by one application."""
        ...

    def handle_creation(self, event: BaseEvent) -> List[Entity]:
        """Entity templates introduced by the event."""
        ...


class DefaultEventProcessor:
    """Delegates straight to the event's own operations."""

    def process(
        self, event: BaseEvent, version: EntityVersion, at: Optional[datetime] = None
    ) -> EntityVersion:
        return event.apply(version, at=at)

    def handle_flows(
        self, event: BaseEvent, before: EntityVersion, after: EntityVersion
    ) -> List[Flow]:
        return event.generate_flows(before, after)

    def handle_creation(self, event: BaseEvent) -> List[Entity]:
        return event.create_entities()
